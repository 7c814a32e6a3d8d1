"""Tests for the site builder's lifecycle hooks."""

import pytest

from api_inliner.pipeline.site_builder import AsyncHook, BuildHooks, HtmlPage


@pytest.mark.asyncio
async def test_taps_run_in_registration_order():
    hook = AsyncHook("before_emit")
    order = []

    def first(page):
        order.append("first")
        page.html += "1"

    async def second(page):
        order.append("second")
        page.html += "2"

    hook.tap("First", first)
    hook.tap("Second", second)
    page = HtmlPage(name="index.html", html="")
    await hook.call(page)
    assert order == ["first", "second"]
    assert page.html == "12"
    assert hook.names == ["First", "Second"]


@pytest.mark.asyncio
async def test_tap_exception_propagates():
    hook = AsyncHook("before_run")

    async def broken():
        raise RuntimeError("stop")

    hook.tap("Broken", broken)
    with pytest.raises(RuntimeError):
        await hook.call()


def test_build_hooks_are_independent():
    a, b = BuildHooks(), BuildHooks()
    a.before_run.tap("X", lambda: None)
    assert a.before_run.names == ["X"]
    assert b.before_run.names == []
