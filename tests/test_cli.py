from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from oss_uploader import cli
from oss_uploader.config import RunConfig
from oss_uploader.credentials import Credentials
from oss_uploader.errors import InvalidPathError, NetworkError
from oss_uploader.files import generate_name, get_files
from oss_uploader.prompts import run_prompts
from oss_uploader.storage import OssClient

from conftest import FakeS3

STS_URL = "https://sts.example.com/api/oss/token"


def _patch_storage(monkeypatch, s3: FakeS3) -> dict:
    seen: dict = {}

    def fake_get_credentials(source, static):
        seen["source"] = source
        return Credentials(bucket_name="assets", access_key_id="id", access_key_secret="secret")

    def fake_make_oss_client(credentials, source):
        seen["credentials"] = credentials
        return OssClient(s3, credentials.bucket_name)

    monkeypatch.setattr(cli, "get_credentials", fake_get_credentials)
    monkeypatch.setattr(cli, "make_oss_client", fake_make_oss_client)
    return seen


def test_run_local_directory_writes_manifest_in_input_order(tmp_path: Path, monkeypatch, fake_s3: FakeS3) -> None:
    seen = _patch_storage(monkeypatch, fake_s3)
    data = tmp_path / "data"
    data.mkdir()
    for name in ("one.txt", "two.png", "three.json"):
        (data / name).write_text(name)
    config = RunConfig(api=STS_URL, file="data", save_dir="imgs", random=False)

    code = asyncio.run(cli.run(config, cwd=tmp_path))

    assert code == 0
    manifest_path = tmp_path / "uploaded_list.json"
    manifest = json.loads(manifest_path.read_text())
    expected = [generate_name(f, "imgs", False) for f in get_files("data", cwd=tmp_path)]
    assert [entry["name"] for entry in manifest] == expected
    assert len(manifest) == 3
    assert manifest[0]["url"] == f"https://assets.oss-cn-hangzhou.aliyuncs.com/{expected[0]}"
    assert manifest_path.read_text().startswith('[\n    {\n        "name"')
    assert seen["source"].endpoint == STS_URL


def test_run_remote_url_mirrors_path_without_save_dir(tmp_path: Path, monkeypatch, fake_s3: FakeS3) -> None:
    _patch_storage(monkeypatch, fake_s3)

    async def fake_fetch_url(url: str) -> bytes:
        return b"remote-bytes"

    monkeypatch.setattr(cli, "fetch_url", fake_fetch_url)
    config = RunConfig(api=STS_URL, url="http://host/a/b.png", save_dir="", random=True)

    asyncio.run(cli.run(config, cwd=tmp_path))

    manifest = json.loads((tmp_path / "uploaded_list.json").read_text())
    assert [entry["name"] for entry in manifest] == ["/a/b.png"]
    assert fake_s3.calls == [("fileobj", "assets", "a/b.png", b"remote-bytes")]


def test_run_url_list_file(tmp_path: Path, monkeypatch, fake_s3: FakeS3) -> None:
    _patch_storage(monkeypatch, fake_s3)
    urls = ["https://cdn.example.com/x/1.png", "https://cdn.example.com/y/2.png"]
    (tmp_path / "urls.json").write_text(json.dumps(urls))

    async def fake_fetch_all(items):
        return [item.encode() for item in items]

    monkeypatch.setattr(cli, "fetch_all", fake_fetch_all)
    config = RunConfig(api=STS_URL, config_file="urls.json", save_dir="mirror", random=False)

    asyncio.run(cli.run(config, cwd=tmp_path))

    manifest = json.loads((tmp_path / "uploaded_list.json").read_text())
    assert [entry["name"] for entry in manifest] == ["mirror/1.png", "mirror/2.png"]


def test_run_upload_failure_writes_no_manifest(tmp_path: Path, monkeypatch, capsys) -> None:
    _patch_storage(monkeypatch, FakeS3(fail_keys=("imgs/b.txt",)))
    (tmp_path / "src").mkdir()
    for name in ("a.txt", "b.txt"):
        (tmp_path / "src" / name).write_text(name)

    code = asyncio.run(cli.run(RunConfig(api=STS_URL, file="src", save_dir="imgs", random=False), cwd=tmp_path))

    assert code == 0
    assert not (tmp_path / "uploaded_list.json").exists()
    assert "denied" in capsys.readouterr().err


def test_run_credential_failure_writes_no_manifest(tmp_path: Path, monkeypatch, capsys) -> None:
    (tmp_path / "a.txt").write_text("a")

    def failing_get_credentials(source, static):
        raise NetworkError("failed to fetch storage credentials: boom")

    monkeypatch.setattr(cli, "get_credentials", failing_get_credentials)

    asyncio.run(cli.run(RunConfig(api=STS_URL, file="a.txt", save_dir="imgs", random=False), cwd=tmp_path))

    assert not (tmp_path / "uploaded_list.json").exists()
    assert "boom" in capsys.readouterr().err


def test_run_missing_path_propagates(tmp_path: Path) -> None:
    with pytest.raises(InvalidPathError):
        asyncio.run(cli.run(RunConfig(api=STS_URL, file="missing", save_dir="imgs", random=False), cwd=tmp_path))


def test_main_missing_path_exits_1_without_manifest(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "run_prompts", lambda config: config)

    code = cli.main(["-a", STS_URL, "-f", "missing", "-s", "imgs", "-r"])

    assert code == 1
    assert not (tmp_path / "uploaded_list.json").exists()


def test_main_missing_url_list_exits_1(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(cli, "run_prompts", lambda config: config)

    assert cli.main(["-a", STS_URL, "-c", "missing.json", "-s", "imgs", "--no-random"]) == 1


def test_build_run_config_precedence(monkeypatch) -> None:
    monkeypatch.delenv("OSS_UPLOADER_API", raising=False)
    monkeypatch.delenv("OSS_UPLOADER_DEBUG", raising=False)
    project = {
        "oss_api_config": {"url": "https://project.example.com/sts", "transfer_response": len},
        "save_dir": "project-dir",
        "random": False,
        "debug": False,
    }

    from_project = cli.build_run_config(cli.parse_args([]), project)
    from_flags = cli.build_run_config(cli.parse_args(["-a", STS_URL, "-s", "flag-dir", "-r"]), project)

    assert (from_project.api, from_project.save_dir, from_project.random) == (
        "https://project.example.com/sts",
        "project-dir",
        False,
    )
    assert from_project.transform is len
    assert (from_flags.api, from_flags.save_dir, from_flags.random) == (STS_URL, "flag-dir", True)
    assert cli.build_run_config(cli.parse_args([]), {}).random is None


def test_debug_env_var(monkeypatch) -> None:
    monkeypatch.setenv("OSS_UPLOADER_DEBUG", "1")

    assert cli.build_run_config(cli.parse_args([]), {}).debug is True


def test_resolve_source_prefers_local_then_url_then_list() -> None:
    assert cli.resolve_source(RunConfig(file="a", url="https://x.com/a", config_file="u.json")) == "local"
    assert cli.resolve_source(RunConfig(url="https://x.com/a", config_file="u.json")) == "url"
    assert cli.resolve_source(RunConfig(config_file="u.json")) == "config"
    assert cli.resolve_source(RunConfig()) == "local"


def test_prompt_answers_replace_invalid_local_path(tmp_path: Path, monkeypatch, fake_s3: FakeS3) -> None:
    monkeypatch.chdir(tmp_path)
    _patch_storage(monkeypatch, fake_s3)

    async def fake_fetch_url(url: str) -> bytes:
        return b"remote-bytes"

    monkeypatch.setattr(cli, "fetch_url", fake_fetch_url)
    answers = {"source_type": "remote", "remote_type": "url", "url": "https://cdn.example.com/a/b.png"}
    config = run_prompts(
        RunConfig(api=STS_URL, file="typo", save_dir="imgs", random=False),
        lambda spec: answers[spec.field],
    )

    assert cli.resolve_source(config) == "url"
    assert asyncio.run(cli.run(config, cwd=tmp_path)) == 0
    manifest = json.loads((tmp_path / "uploaded_list.json").read_text())
    assert [entry["name"] for entry in manifest] == ["imgs/b.png"]


def test_prompt_answer_config_file_wins_over_invalid_url() -> None:
    config = RunConfig(url="not a link", source_type="remote", remote_type="config", config_file="urls.json")

    assert cli.resolve_source(config) == "config"


def test_main_runs_interactive_prompts_into_upload(tmp_path: Path, monkeypatch, fake_s3: FakeS3) -> None:
    monkeypatch.chdir(tmp_path)
    _patch_storage(monkeypatch, fake_s3)
    fetched = []

    async def fake_fetch_url(url: str) -> bytes:
        fetched.append(url)
        return b"remote-bytes"

    monkeypatch.setattr(cli, "fetch_url", fake_fetch_url)

    with CliRunner().isolation(input="remote\nurl\nhttps://cdn.example.com/a/b.png\n"):
        code = cli.main(["-a", STS_URL, "-f", "typo", "-s", "imgs", "--no-random"])

    assert code == 0
    assert fetched == ["https://cdn.example.com/a/b.png"]
    manifest = json.loads((tmp_path / "uploaded_list.json").read_text())
    assert manifest == [{"name": "imgs/b.png", "url": "https://assets.oss-cn-hangzhou.aliyuncs.com/imgs/b.png"}]


def test_run_overwrites_existing_manifest(tmp_path: Path, monkeypatch, fake_s3: FakeS3) -> None:
    _patch_storage(monkeypatch, fake_s3)
    (tmp_path / "uploaded_list.json").write_text('[{"name": "old", "url": "stale"}]')
    (tmp_path / "a.txt").write_text("a")

    asyncio.run(cli.run(RunConfig(api=STS_URL, file="a.txt", save_dir="imgs", random=False), cwd=tmp_path))

    manifest = json.loads((tmp_path / "uploaded_list.json").read_text())
    assert [entry["name"] for entry in manifest] == ["imgs/a.txt"]


def test_run_empty_source_writes_empty_manifest(tmp_path: Path, monkeypatch, fake_s3: FakeS3) -> None:
    seen = _patch_storage(monkeypatch, fake_s3)
    (tmp_path / "uploaded_list.json").write_text('[{"name": "old", "url": "stale"}]')
    (tmp_path / "empty").mkdir()

    code = asyncio.run(cli.run(RunConfig(api=STS_URL, file="empty", save_dir="imgs", random=False), cwd=tmp_path))

    assert code == 0
    assert json.loads((tmp_path / "uploaded_list.json").read_text()) == []
    assert "credentials" in seen
    assert fake_s3.calls == []


def test_main_reports_broken_project_config(tmp_path: Path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "oss_uploader_config.py").write_text("config = undefined_name\n")

    assert cli.main(["-a", STS_URL, "-f", "."]) == 1
    assert "NameError" in capsys.readouterr().err
