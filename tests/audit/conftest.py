"""Fixtures for running a single check against the fake registry."""

from __future__ import annotations

import asyncio
from typing import Any, Callable

import pytest

from trustgate.audit.base import Check
from trustgate.audit.context import AuditContext
from trustgate.audit.models import CheckResult
from trustgate.registry.models import PackageSpec


@pytest.fixture
def run_check(make_ctx: Callable[..., AuditContext]) -> Callable[..., CheckResult]:
    """Run ``check_cls`` for one package spec string and return its result."""

    def _run(check_cls: type[Check], spec: str, **ctx_kwargs: Any) -> CheckResult:
        async def go() -> CheckResult:
            async with make_ctx(**ctx_kwargs) as ctx:
                return await check_cls(ctx).validate(PackageSpec.parse(spec))

        return asyncio.run(go())

    return _run
