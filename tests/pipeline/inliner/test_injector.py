"""Tests for script-tag generation and HTML injection."""

import asyncio
import json

import pytest

from api_inliner.pipeline.inliner.injector import (
    InlineInjector,
    build_script_tag,
    build_script_tags,
    inject_scripts,
    serialize_for_script,
)
from api_inliner.pipeline.inliner.models import (
    BuildState,
    EndpointConfig,
    FinalData,
    GlobalOptions,
    Provenance,
)
from api_inliner.pipeline.inliner.resolver import resolve_endpoints
from api_inliner.pipeline.site_builder import HtmlPage

HTML = "<html><head><title>t</title></head><body></body></html>"


def make_state(production_data):
    endpoints = resolve_endpoints(
        [
            EndpointConfig(url="https://x/a", fallback_data={"v": 1}, variable_name="A"),
            EndpointConfig(
                url="https://x/b",
                fallback_data=0,
                variable_name="B",
                inline_as_variable=False,
            ),
            EndpointConfig(url="https://x/c", fallback_data=[], variable_name="C"),
        ],
        GlobalOptions(production=True),
    )
    state = BuildState()
    state.endpoints = tuple(endpoints)
    for endpoint in endpoints:
        state.record(endpoint, FinalData(production_data, Provenance.FETCHED, 1))
    return state


def test_serialize_escapes_script_breaking_sequences():
    text = serialize_for_script({"html": "</script><!-- x", "ls": "a\u2028b\u2029c"})
    assert "</" not in text
    assert "<!--" not in text
    assert "\u2028" not in text and "\u2029" not in text
    # Still valid JSON with the original values
    assert json.loads(text) == {"html": "</script><!-- x", "ls": "a\u2028b\u2029c"}


def test_build_script_tag_assigns_global():
    tag = build_script_tag("A", {"v": 1})
    assert tag == '<script>window["A"] = {"v":1};</script>'


def test_tags_follow_configuration_order_and_skip_non_inlined():
    state = make_state({"ok": True})
    tags = build_script_tags(state.endpoints, state)
    assert len(tags) == 2
    assert tags[0].startswith('<script>window["A"]')
    assert tags[1].startswith('<script>window["C"]')


def test_missing_entry_uses_fallback_data():
    state = make_state(None)
    empty = BuildState()
    tags = build_script_tags(state.endpoints, empty)
    assert tags[0] == '<script>window["A"] = {"v":1};</script>'


def test_inject_places_tags_before_head_close():
    out = inject_scripts(HTML, ["<script>1</script>", "<script>2</script>"])
    assert out == (
        "<html><head><title>t</title><script>1</script>\n"
        "<script>2</script>\n</head><body></body></html>"
    )


def test_inject_matches_head_marker_case_insensitively():
    out = inject_scripts("<HEAD></HEAD>", ["<script>1</script>"])
    assert out == "<HEAD><script>1</script>\n</HEAD>"


def test_inject_without_head_marker_leaves_markup_unchanged():
    assert inject_scripts("<p>fragment</p>", ["<script>1</script>"]) == "<p>fragment</p>"
    assert inject_scripts(HTML, []) == HTML


@pytest.mark.asyncio
async def test_injector_waits_for_build_state():
    state = make_state({"v": 9})
    ready = asyncio.Event()

    async def wait_for_state():
        await ready.wait()
        return state

    page = HtmlPage(name="index.html", html=HTML)
    task = asyncio.create_task(InlineInjector(wait_for_state)(page))
    await asyncio.sleep(0)
    assert page.html == HTML and not task.done()

    ready.set()
    await task
    assert page.html.count("<script>") == 2
    assert 'window["A"] = {"v":9};' in page.html


@pytest.mark.asyncio
async def test_injector_with_no_state_is_a_no_op():
    async def wait_for_state():
        return None

    page = HtmlPage(name="index.html", html=HTML)
    await InlineInjector(wait_for_state)(page)
    assert page.html == HTML
