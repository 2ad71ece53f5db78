"""Deprecation check: registry deprecation flag and archived GitHub repos.

Only explicit evidence fails this check. Missing registry data passes.
"""

from __future__ import annotations

from trustgate.audit.base import Check
from trustgate.audit.models import Category, CheckResult
from trustgate.registry.github import extract_github_repo
from trustgate.registry.models import PackageSpec, Packument


class DeprecationCheck(Check):
    """Error on deprecated versions and packages whose repository is archived."""

    name = "deprecation"
    category = Category.PACKAGE_HEALTH

    def title(self) -> str:
        return "Checking package for deprecation flag"

    async def validate(self, pkg: PackageSpec) -> CheckResult:
        packument = await self.packument_or_none(pkg)
        if packument is None:
            return CheckResult.passed()

        version = self.resolve_or_none(packument, pkg)
        if version is None:
            return CheckResult.passed()

        deprecated = packument.version_data(version).get("deprecated")
        if deprecated:
            return CheckResult.error(f"Package deprecated: {deprecated}")

        if await self._repo_archived(packument):
            return CheckResult.error("Package repository has been archived on GitHub")
        return CheckResult.passed()

    async def _repo_archived(self, packument: Packument) -> bool:
        # TODO: GitLab and Bitbucket also expose an archived flag.
        repo = extract_github_repo(packument.repository_url)
        if repo is None:
            return False
        return await self.ctx.github.is_archived(repo.owner, repo.repo)
