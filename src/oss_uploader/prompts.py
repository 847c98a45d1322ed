"""
Interactive prompts for whatever the command line and project config left out.

Each stage looks at the current RunConfig and either returns the PromptSpec
it needs answered or None when its value is already present and valid.
``run_prompts`` walks the stages in order and merges every answer back in.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Optional, Sequence, Tuple

import click

from . import config as cfg
from .config import RunConfig
from .utils import get_absolute_path, is_link

logger = logging.getLogger(__name__)

SOURCE_TYPES: Sequence[Tuple[str, str]] = (
    ("local", "local files"),
    ("remote", "remote file links"),
)
REMOTE_TYPES: Sequence[Tuple[str, str]] = (
    ("url", "a single remote file link"),
    ("config", "a .json file listing remote links"),
)


@dataclass
class PromptSpec:
    field: str
    message: str
    kind: str = "input"  # input | choice | confirm
    default: Any = None
    choices: Sequence[Tuple[str, str]] = ()
    validate: Optional[Callable[[str], str]] = None


def validate_file(file: Optional[str]) -> bool:
    return bool(file) and get_absolute_path(file).exists()


def validate_remote(url: Optional[str]) -> bool:
    return is_link(url)


def validate_config_file(config_file: Optional[str]) -> bool:
    if not config_file:
        return False
    path = get_absolute_path(config_file)
    return path.is_file() and path.suffix.lower() == ".json"


def _check_path(value: str) -> str:
    if not validate_file(value):
        raise click.BadParameter("please enter an existing file or directory path")
    return value


def _check_link(value: str) -> str:
    value = (value or "").strip()
    if not is_link(value):
        raise click.BadParameter("please enter a valid remote file link")
    return value


def _check_config_file(value: str) -> str:
    if not validate_config_file(value):
        raise click.BadParameter("please enter the relative path of an existing .json file")
    return value


def api_stage(config: RunConfig) -> Optional[PromptSpec]:
    if is_link(config.api) or config.oss_config:
        return None
    return PromptSpec("api", "Storage credential API url", validate=_check_link)


def source_type_stage(config: RunConfig) -> Optional[PromptSpec]:
    if config.source_type or validate_file(config.file) or validate_remote(config.url) or validate_config_file(config.config_file):
        return None
    return PromptSpec("source_type", "Upload from", kind="choice", choices=SOURCE_TYPES, default="local")


def source_detail_stage(config: RunConfig) -> Optional[PromptSpec]:
    if config.source_type == "local" and not validate_file(config.file):
        return PromptSpec(
            "file", "Relative path of the file or directory to upload", default=".", validate=_check_path
        )
    if config.source_type == "remote" and not config.remote_type:
        return PromptSpec("remote_type", "Remote files come from", kind="choice", choices=REMOTE_TYPES, default="url")
    return None


def remote_detail_stage(config: RunConfig) -> Optional[PromptSpec]:
    if config.remote_type == "url" and not validate_remote(config.url):
        return PromptSpec("url", "Remote file link to upload", validate=_check_link)
    if config.remote_type == "config" and not validate_config_file(config.config_file):
        return PromptSpec(
            "config_file", "Relative path of the .json file listing remote links", validate=_check_config_file
        )
    return None


def save_dir_stage(config: RunConfig) -> Optional[PromptSpec]:
    if config.save_dir is not None:
        return None
    return PromptSpec("save_dir", "Directory to save files under (created if missing)", default=cfg.DEFAULT_SAVE_DIR)


def random_stage(config: RunConfig) -> Optional[PromptSpec]:
    if config.random is not None:
        return None
    return PromptSpec("random", "Generate random file names?", kind="confirm", default=True)


STAGES: List[Callable[[RunConfig], Optional[PromptSpec]]] = [
    api_stage,
    source_type_stage,
    source_detail_stage,
    remote_detail_stage,
    save_dir_stage,
    random_stage,
]


def ask_click(spec: PromptSpec) -> Any:
    if spec.kind == "confirm":
        return click.confirm(spec.message, default=spec.default)
    if spec.kind == "choice":
        for value, label in spec.choices:
            click.echo(f"  {value:<8} {label}")
        return click.prompt(
            spec.message,
            type=click.Choice([value for value, _ in spec.choices]),
            default=spec.default,
        )
    # click re-prompts in place when value_proc raises BadParameter
    return click.prompt(spec.message, default=spec.default, value_proc=spec.validate)


def run_prompts(config: RunConfig, ask: Callable[[PromptSpec], Any] = ask_click) -> RunConfig:
    for stage in STAGES:
        spec = stage(config)
        if spec is None:
            continue
        answer = ask(spec)
        logger.debug("prompt %s -> %r", spec.field, answer)
        config = replace(config, **{spec.field: answer})
    return config
