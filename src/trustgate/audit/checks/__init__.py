"""Built-in audit checks.

``ALL_CHECKS`` lists the check classes in the order they are displayed.
"""

from __future__ import annotations

from trustgate.audit.checks.age import AgeCheck
from trustgate.audit.checks.author import AuthorCheck
from trustgate.audit.checks.deprecation import DeprecationCheck
from trustgate.audit.checks.downloads import DownloadsCheck
from trustgate.audit.checks.provenance import ProvenanceCheck
from trustgate.audit.checks.scripts import ScriptsCheck
from trustgate.audit.checks.signatures import SignaturesCheck
from trustgate.audit.checks.typosquatting import TyposquattingCheck
from trustgate.audit.checks.version_maturity import VersionMaturityCheck
from trustgate.audit.checks.vulnerabilities import VulnerabilitiesCheck

ALL_CHECKS = (
    TyposquattingCheck,
    SignaturesCheck,
    ProvenanceCheck,
    VulnerabilitiesCheck,
    AuthorCheck,
    VersionMaturityCheck,
    AgeCheck,
    DeprecationCheck,
    DownloadsCheck,
    ScriptsCheck,
)

__all__ = [
    "ALL_CHECKS",
    "AgeCheck",
    "AuthorCheck",
    "DeprecationCheck",
    "DownloadsCheck",
    "ProvenanceCheck",
    "ScriptsCheck",
    "SignaturesCheck",
    "TyposquattingCheck",
    "VersionMaturityCheck",
    "VulnerabilitiesCheck",
]
