"""Typosquatting check: compares the requested name to popular packages."""

from __future__ import annotations

from trustgate.audit.base import Check
from trustgate.audit.models import Category, CheckResult
from trustgate.registry.models import PackageSpec
from trustgate.similarity import DEFAULT_TYPOSQUAT_DISTANCE, find_similar_names


class TyposquattingCheck(Check):
    """Error when a name is a few edits away from a well-known package.

    Short corpus names (``koa``, ``zod``, ``ws``) only match one edit away;
    see ``trustgate.similarity.scaled_threshold``.
    """

    name = "typosquatting"
    category = Category.SUPPLY_CHAIN_SECURITY
    max_distance: int = DEFAULT_TYPOSQUAT_DISTANCE

    def title(self) -> str:
        return "Checking package name for typosquatting"

    async def validate(self, pkg: PackageSpec) -> CheckResult:
        corpus = self.ctx.popular_packages
        if pkg.name in corpus:
            return CheckResult.passed()

        similar = find_similar_names(
            pkg.name,
            corpus,
            max_distance=self.max_distance,
            scale_short_names=True,
        )
        if similar:
            names = ", ".join(s.name for s in similar)
            return CheckResult.error(
                f"Package name could be a typosquatting attempt of popular package(s): {names}"
            )
        return CheckResult.passed()
