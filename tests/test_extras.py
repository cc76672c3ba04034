from __future__ import annotations

import pytest

from chart_releaser.client import ClientError
from chart_releaser.config import ExtrasConfig, SearchReplace
from chart_releaser.context import RunContext
from chart_releaser.extras import ExtrasError, apply_update, run_extras
from chart_releaser.semver import parse_version
from chart_releaser.templates import TemplateError

from .conftest import FakeClient


def _extra(path: str, *updates: SearchReplace) -> ExtrasConfig:
    return ExtrasConfig(path=path, updates=list(updates))


def test_run_extras_replaces_matches(ctx: RunContext, client: FakeClient) -> None:
    client.files["path1"] = "test file data search"
    client.files["path2"] = "test file data search"
    ctx.config.extras = [
        _extra("path1", SearchReplace(search="search", replace="replace")),
        _extra("path2", SearchReplace(search="search", replace="replace", limit=2)),
    ]

    run_extras(ctx)

    assert [f.path for f in ctx.files] == ["path1", "path2"]
    for extra_file in ctx.files:
        assert extra_file.previous_contents == "test file data search"
        assert extra_file.new_contents == "test file data replace"


def test_replacement_is_rendered_against_context(ctx: RunContext, client: FakeClient) -> None:
    client.files["README.md"] = "image: app:0.1.0\nchart: 1.2.3\n"
    ctx.app.new_version = parse_version("0.2.0")
    ctx.config.extras = [
        _extra(
            "README.md",
            SearchReplace(search=r"app:\d+\.\d+\.\d+", replace="app:{{ app.new_version }}"),
        )
    ]

    run_extras(ctx)

    assert ctx.files[0].new_contents == "image: app:0.2.0\nchart: 1.2.3\n"


def test_limit_caps_replacements(ctx: RunContext) -> None:
    update = SearchReplace(search="a", replace="b", limit=2)
    assert apply_update(ctx, "aaaa", update) == "bbaa"
    assert apply_update(ctx, "aaaa", SearchReplace(search="a", replace="b")) == "bbbb"


def test_replacement_is_literal(ctx: RunContext) -> None:
    update = SearchReplace(search="(x)", replace=r"\1\n")
    assert apply_update(ctx, "axb", update) == r"a\1\nb"


def test_unchanged_file_is_still_recorded(ctx: RunContext, client: FakeClient) -> None:
    client.files["values.yaml"] = "nothing to see"
    ctx.config.extras = [_extra("values.yaml", SearchReplace(search="absent", replace="x"))]

    run_extras(ctx)

    assert len(ctx.files) == 1
    assert not ctx.files[0].has_changes()


def test_get_file_error(ctx: RunContext, client: FakeClient) -> None:
    client.get_file_errors.append(ClientError("test error"))
    ctx.config.extras = [_extra("path1", SearchReplace(search="s", replace="r"))]

    with pytest.raises(ClientError, match="test error"):
        run_extras(ctx)
    assert ctx.files == []


def test_get_file_error_dry_run_skips_file(dry_ctx: RunContext, client: FakeClient) -> None:
    client.get_file_errors.append(ClientError("test error"))
    client.files["path2"] = "search"
    dry_ctx.config.extras = [
        _extra("path1", SearchReplace(search="search", replace="replace")),
        _extra("path2", SearchReplace(search="search", replace="replace")),
    ]

    run_extras(dry_ctx)

    assert [f.path for f in dry_ctx.files] == ["path2"]
    assert dry_ctx.errors().count() == 1


def test_bad_regex(ctx: RunContext, client: FakeClient) -> None:
    client.files["path1"] = "data"
    ctx.config.extras = [_extra("path1", SearchReplace(search="(unclosed", replace="r"))]

    with pytest.raises(ExtrasError, match="invalid search regex"):
        run_extras(ctx)


def test_bad_template_dry_run_skips_update(dry_ctx: RunContext, client: FakeClient) -> None:
    client.files["path1"] = "one two"
    dry_ctx.config.extras = [
        _extra(
            "path1",
            SearchReplace(search="one", replace="{{ unknown.value }}"),
            SearchReplace(search="two", replace="2"),
        )
    ]

    run_extras(dry_ctx)

    assert dry_ctx.files[0].new_contents == "one 2"
    assert [type(err) for err in dry_ctx.errors()] == [TemplateError]
