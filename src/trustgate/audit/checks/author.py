"""Author check: who published this version, and how recently.

Two complementary signals:

1. New publisher. If this version is the first one the publishing user ever
   released for the package, and it was released in the last 21 days, the
   package may have been taken over.
2. Version recency. Versions released in the last 7 days are an error and
   those released in the last 30 days a warning, whoever published them.
"""

from __future__ import annotations

import re

from trustgate.audit.base import Check, days_since, round_days
from trustgate.audit.models import Category, CheckResult
from trustgate.registry.models import PackageSpec

NEW_AUTHOR_WINDOW: int = 21  # days
RECENT_VERSION_ERROR: int = 7  # days
RECENT_VERSION_WARNING: int = 30  # days

_EMAIL_RE = re.compile(
    r"^(?!\.)(?!.*\.\.)([a-z0-9_'+\-.]*)[a-z0-9_'+-]@([a-z0-9][a-z0-9-]*\.)+[a-z]{2,}$",
    re.I,
)


class AuthorCheck(Check):
    """Flag first-time publishers and very fresh versions."""

    name = "author"
    category = Category.SUPPLY_CHAIN_SECURITY

    def title(self) -> str:
        return "Identifying package author"

    async def validate(self, pkg: PackageSpec) -> CheckResult:
        packument = await self.packument_or_none(pkg)
        version = self.resolve_or_none(packument, pkg) if packument else None
        if packument is None or version is None:
            return CheckResult.error("Could not determine publishing user for this package version")

        manifest = await self.ctx.registry.get_manifest(PackageSpec(pkg.name, version))
        npm_user = manifest.npm_user
        if not npm_user.get("email"):
            return CheckResult.error("Could not determine publishing user for this package version")

        email = str(npm_user["email"])
        user = f"{npm_user.get('name', '')} <{email}>"
        if not _EMAIL_RE.match(email):
            return CheckResult.error("The publishing user has no valid email address")

        published = manifest.publish_time
        days = None
        if published:
            try:
                days = max(round_days(days_since(published, self.now())), 0)
            except ValueError:
                days = None

        first_version = next(
            (
                data.get("version", v)
                for v, data in packument.versions.items()
                if isinstance(data, dict)
                and isinstance(data.get("_npmUser"), dict)
                and data["_npmUser"].get("email") == email
            ),
            None,
        )
        if (first_version is None or first_version == version) and days is not None:
            if days <= NEW_AUTHOR_WINDOW:
                return CheckResult.error(
                    f"The user {user} published this package for the first time "
                    f"only {days} days ago"
                )

        if days is not None and days <= RECENT_VERSION_ERROR:
            return CheckResult.error(f"This version was published only {days} days ago by {user}")
        if days is not None and days <= RECENT_VERSION_WARNING:
            return CheckResult.warning(f"This version was published only {days} days ago by {user}")

        return CheckResult.passed(published)
