import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from . import config as cfg
from .config import RunConfig
from .credentials import CredentialSource, get_credentials
from .errors import InvalidPathError, UploaderError
from .files import generate_name, generate_remote_name, get_files, read_url_list
from .logging_config import configure_logging
from .progress import UploadProgress
from .project_config import ProjectConfigError, load_project_config
from .prompts import run_prompts
from .remote import fetch_all, fetch_url
from .storage import UploadResult, UploadTarget, make_oss_client, upload_all

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="oss-upload",
        description="Upload local files or remote file links to an object storage bucket and write a manifest of the uploaded objects.",
    )
    p.add_argument("-a", "--api", default=None, help="URL of the API returning temporary storage credentials")
    p.add_argument("-f", "--file", default=None, help="Local file or directory to upload")
    p.add_argument("-s", "--saveDir", dest="save_dir", default=None, help="Bucket directory to save objects under")
    p.add_argument(
        "-c",
        "--configFile",
        dest="config_file",
        default=None,
        help="Local .json file containing an array of remote file links to upload",
    )
    p.add_argument("-u", "--url", default=None, help="Remote file link to upload")
    p.add_argument(
        "-r",
        "--random",
        dest="random",
        action="store_true",
        default=None,
        help="Generate random object names",
    )
    p.add_argument(
        "--no-random",
        dest="random",
        action="store_false",
        help="Keep original file names (skips the random-name prompt)",
    )
    p.add_argument("-d", "--debug", action="store_true", help="Print diagnostic output")
    p.add_argument("-V", "--version", action="version", version=f"%(prog)s {cfg.VERSION}")
    return p.parse_args(argv)


def build_run_config(args: argparse.Namespace, project: Dict[str, Any]) -> RunConfig:
    # Priority: CLI flag > environment > project config > prompt (later)
    api_config = project.get("oss_api_config") or {}
    random = args.random if args.random is not None else project.get("random")
    return RunConfig(
        api=args.api or cfg.env_api() or api_config.get("url"),
        file=args.file,
        save_dir=args.save_dir if args.save_dir is not None else project.get("save_dir"),
        config_file=args.config_file,
        url=args.url,
        random=None if random is None else bool(random),
        debug=bool(args.debug or project.get("debug") or cfg.env_debug()),
        oss_config=project.get("oss_config"),
        transform=api_config.get("transfer_response"),
    )


def resolve_source(config: RunConfig) -> str:
    # Prompt answers win; otherwise local file > remote url > url list file > current directory
    if config.source_type == "local":
        return "local"
    if config.source_type == "remote" and config.remote_type in ("url", "config"):
        return config.remote_type
    if config.file:
        return "local"
    if config.url:
        return "url"
    if config.config_file:
        return "config"
    return "local"


async def build_targets(config: RunConfig, cwd: Path) -> List[UploadTarget]:
    source = resolve_source(config)
    save_dir = config.save_dir
    randomize = bool(config.random)

    if source == "local":
        local_dir = save_dir if save_dir is not None else cfg.DEFAULT_SAVE_DIR
        files = get_files(config.file or ".", cwd)
        return [UploadTarget(name=generate_name(f, local_dir, randomize), source=f) for f in files]

    if source == "url":
        click.echo(f"Fetching {config.url} ...")
        data = await fetch_url(config.url)
        return [UploadTarget(name=generate_remote_name(config.url, save_dir, randomize), source=data)]

    urls = read_url_list(config.config_file, cwd)
    click.echo(f"Fetching {len(urls)} remote files ...")
    contents = await fetch_all(urls)
    return [
        UploadTarget(name=generate_remote_name(url, save_dir, randomize), source=data)
        for url, data in zip(urls, contents)
    ]


def write_manifest(results: List[UploadResult], cwd: Path) -> Path:
    path = cwd / cfg.MANIFEST_FILENAME
    path.write_text(json.dumps([r.to_dict() for r in results], indent=4, ensure_ascii=False), encoding="utf-8")
    return path


async def run(config: RunConfig, cwd: Optional[Path] = None) -> int:
    """Resolve targets, acquire credentials, upload everything, write the manifest.

    InvalidPathError propagates to the caller. Every other failure is
    reported once and stops the run without a manifest.
    """
    cwd = cwd or Path.cwd()
    try:
        targets = await build_targets(config, cwd)
        if not targets:
            click.echo("Nothing to upload, writing an empty manifest.")

        source = CredentialSource(config.api, config.transform) if config.api else None
        click.echo("Fetching storage credentials ...")
        credentials = await asyncio.to_thread(get_credentials, source, config.oss_config)
        client = make_oss_client(credentials, source)

        total_bytes = sum(t.size_bytes for t in targets)
        progress = UploadProgress(
            total_bytes=total_bytes,
            total_files=len(targets),
        )
        results = await upload_all(client, targets, progress)
        progress.finish()

        manifest = write_manifest(results, cwd)
    except InvalidPathError:
        raise
    except Exception as exc:
        logger.debug("run failed", exc_info=True)
        message = exc.message if isinstance(exc, UploaderError) else str(exc)
        click.echo(err=True)
        click.secho(message or exc.__class__.__name__, fg="red", err=True)
        return 0

    click.echo(
        f"Uploaded {len(results)} files ({UploadProgress.format_bytes(total_bytes)}), "
        "more upload info please see " + click.style(str(manifest), fg="blue")
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    try:
        project = load_project_config()
    except ProjectConfigError as exc:
        click.secho(str(exc), fg="red", err=True)
        return 1

    config = build_run_config(args, project)
    configure_logging(config.debug)

    try:
        config = run_prompts(config)
    except click.Abort:
        click.echo("Aborted.", err=True)
        return 1

    logger.debug("config %s", config)

    try:
        return asyncio.run(run(config))
    except InvalidPathError as exc:
        click.secho(exc.message, fg="red", err=True)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
