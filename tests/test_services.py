"""Tests for repository reference resolution and wiki request building."""

from __future__ import annotations

import pytest

from repowiki.models import (
    ConfigurationBundle,
    RepositoryLocator,
    ResolutionFailure,
    SourceKind,
)
from repowiki.services import (
    ReferenceShape,
    build_wiki_request,
    classify_reference,
    resolve_reference,
)


@pytest.mark.parametrize(
    ("text", "shape"),
    [
        ("C:\\Users\\me\\proj", ReferenceShape.WINDOWS),
        ("/home/user/proj", ReferenceShape.UNIX),
        ("octocat/Hello-World", ReferenceShape.GENERIC),
        ("https://github.com/foo/bar.git", ReferenceShape.GENERIC),
        ("not a path or url", ReferenceShape.UNRECOGNIZED),
        ("", ReferenceShape.UNRECOGNIZED),
    ],
)
def test_classify_reference(text: str, shape: ReferenceShape) -> None:
    assert classify_reference(text) is shape


def test_windows_path_is_not_treated_as_url() -> None:
    # "C:" would otherwise look like a host segment
    assert classify_reference("C:\\work\\repo") is ReferenceShape.WINDOWS


def test_shorthand_owner_repo() -> None:
    locator = resolve_reference("octocat/Hello-World")
    assert locator == RepositoryLocator(
        owner="octocat",
        repo="Hello-World",
        source_kind=SourceKind.GIT,
        full_path="octocat/Hello-World",
    )


def test_https_url_with_git_suffix() -> None:
    locator = resolve_reference("https://github.com/foo/bar.git")
    assert isinstance(locator, RepositoryLocator)
    assert (locator.owner, locator.repo) == ("foo", "bar")
    assert locator.source_kind is SourceKind.GIT
    assert locator.full_path == "foo/bar"
    assert locator.local_path is None


@pytest.mark.parametrize(
    "text",
    [
        "github.com/foo/bar",
        "http://github.com/foo/bar",
        "https://github.com/foo/bar/",
        "https://bitbucket.org/foo/bar.git",
        "foo/bar.git",
        "  https://github.com/foo/bar  ",
    ],
)
def test_last_two_segments_regardless_of_scheme(text: str) -> None:
    locator = resolve_reference(text)
    assert isinstance(locator, RepositoryLocator)
    assert (locator.owner, locator.repo) == ("foo", "bar")


def test_nested_group_keeps_full_path() -> None:
    locator = resolve_reference("https://gitlab.com/group/subgroup/project")
    assert isinstance(locator, RepositoryLocator)
    assert locator.owner == "subgroup"
    assert locator.repo == "project"
    assert locator.full_path == "group/subgroup/project"


def test_self_hosted_with_port() -> None:
    locator = resolve_reference("http://localhost:3000/team/tool.git")
    assert isinstance(locator, RepositoryLocator)
    assert (locator.owner, locator.repo) == ("team", "tool")


@pytest.mark.parametrize(
    ("text", "repo"),
    [
        ("C:\\Users\\me\\myproj", "myproj"),
        ("d:\\code", "code"),
        ("C:\\Users\\me\\", "local-repo"),
        ("C:\\", "local-repo"),
        ("C:\\work\\proj.git", "proj"),
    ],
)
def test_windows_paths(text: str, repo: str) -> None:
    locator = resolve_reference(text)
    assert isinstance(locator, RepositoryLocator)
    assert locator.source_kind is SourceKind.LOCAL
    assert locator.owner == "local"
    assert locator.repo == repo
    assert locator.local_path == text
    assert locator.full_path is None


@pytest.mark.parametrize(
    ("text", "repo"),
    [
        ("/home/user/myproj", "myproj"),
        ("/home/user/myproj/", "myproj"),
        ("/srv//repos//x", "x"),
        ("/", "local-repo"),
        ("/home/user/proj.git", "proj"),
        ("/home/user/ proj", "proj"),
    ],
)
def test_unix_paths(text: str, repo: str) -> None:
    locator = resolve_reference(text)
    assert isinstance(locator, RepositoryLocator)
    assert locator.source_kind is SourceKind.LOCAL
    assert locator.owner == "local"
    assert locator.repo == repo
    assert locator.local_path == text


def test_unix_path_example() -> None:
    assert resolve_reference("/home/user/myproj") == RepositoryLocator(
        owner="local",
        repo="myproj",
        source_kind=SourceKind.LOCAL,
        local_path="/home/user/myproj",
    )


@pytest.mark.parametrize(
    "text",
    [
        "not a path or url",
        "",
        "   ",
        "just-a-name",
        "https://github.com",
        "github.com/foo",
        "https://github.com/foo",
        "git@github.com:foo/bar.git",
        "foo//bar",
        "foo/.git",
    ],
)
def test_unresolvable_inputs_return_failure(text: str) -> None:
    result = resolve_reference(text)
    assert isinstance(result, ResolutionFailure)
    assert result.raw_input == text


def test_unsupported_format_reason() -> None:
    result = resolve_reference("not a path or url")
    assert isinstance(result, ResolutionFailure)
    assert result.reason == "unsupported_format"


def test_resolution_logs_unsupported_input(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level("ERROR", logger="repowiki.services"):
        resolve_reference("not a path or url")
    assert "Unsupported URL format" in caplog.text


def _config(**overrides: object) -> ConfigurationBundle:
    values = dict(
        platform="github",
        access_token="",
        provider="p",
        model="m",
        is_custom_model=False,
        language="en",
        comprehensive=True,
    )
    values.update(overrides)
    return ConfigurationBundle(**values)


def test_build_request_for_shorthand() -> None:
    locator = resolve_reference("octocat/Hello-World")
    target = build_wiki_request(locator, _config(), "octocat/Hello-World")

    assert target.path == "/octocat/Hello-World"
    assert target.query_string == (
        "?type=github&repo_url=octocat%2FHello-World&provider=p&model=m"
        "&language=en&comprehensive=true"
    )
    keys = [key for key, _ in target.query]
    for omitted in ("token", "custom_model", "excluded_dirs", "excluded_files", "local_path"):
        assert omitted not in keys


def test_build_request_with_all_options() -> None:
    raw = "https://gitlab.com/foo/bar"
    locator = resolve_reference(raw)
    config = _config(
        platform="gitlab",
        access_token="secret",
        is_custom_model=True,
        custom_model="my-model",
        excluded_dirs="./node_modules/\n./dist/",
        excluded_files="*.lock",
        language="ja",
        comprehensive=False,
    )
    target = build_wiki_request(locator, config, raw)

    assert target.query == [
        ("token", "secret"),
        ("type", "gitlab"),
        ("repo_url", raw),
        ("provider", "p"),
        ("model", "m"),
        ("custom_model", "my-model"),
        ("excluded_dirs", "./node_modules/\n./dist/"),
        ("excluded_files", "*.lock"),
        ("language", "ja"),
        ("comprehensive", "false"),
    ]
    assert target.url.startswith("/foo/bar?token=secret&type=gitlab&repo_url=https%3A%2F%2Fgitlab.com%2Ffoo%2Fbar&")


def test_custom_model_requires_flag_and_value() -> None:
    locator = resolve_reference("foo/bar")
    off = build_wiki_request(locator, _config(is_custom_model=False, custom_model="x"), "foo/bar")
    empty = build_wiki_request(locator, _config(is_custom_model=True, custom_model=""), "foo/bar")
    assert "custom_model" not in dict(off.query)
    assert "custom_model" not in dict(empty.query)


def test_local_request_uses_local_path_and_ignores_platform() -> None:
    raw = "C:\\Users\\me\\proj"
    locator = resolve_reference(raw)
    target = build_wiki_request(locator, _config(platform="bitbucket"), raw)

    query = dict(target.query)
    assert target.path == "/local/proj"
    assert query["type"] == "local"
    assert query["local_path"] == raw
    assert "repo_url" not in query
    assert "local_path=C%3A%5CUsers%5Cme%5Cproj" in target.query_string


def test_repo_url_is_raw_input() -> None:
    raw = "  https://github.com/foo/bar.git "
    target = build_wiki_request(resolve_reference(raw), _config(), raw)
    assert dict(target.query)["repo_url"] == raw


@pytest.mark.parametrize("raw", ["foo/bar", "/tmp/x", "C:\\x", "https://github.com/a/b"])
def test_local_path_and_repo_url_are_exclusive(raw: str) -> None:
    target = build_wiki_request(resolve_reference(raw), _config(), raw)
    keys = [key for key, _ in target.query]
    assert ("local_path" in keys) != ("repo_url" in keys)


def test_build_is_deterministic() -> None:
    locator = resolve_reference("foo/bar")
    config = _config(access_token="t", excluded_dirs="a,b")
    first = build_wiki_request(locator, config, "foo/bar")
    second = build_wiki_request(locator, config, "foo/bar")
    assert first.url == second.url


def test_local_locator_without_path_is_rejected() -> None:
    locator = RepositoryLocator.model_construct(
        owner="local", repo="x", source_kind=SourceKind.LOCAL, local_path=None, full_path=None
    )
    with pytest.raises(ValueError):
        build_wiki_request(locator, _config(), "x")


def test_locator_rejects_mixed_fields() -> None:
    with pytest.raises(ValueError):
        RepositoryLocator(
            owner="o", repo="r", source_kind=SourceKind.GIT, full_path="o/r", local_path="/o/r"
        )
