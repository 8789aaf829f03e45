# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import logging
import textwrap
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Type, TypeVar, Union

import click
import tomli
from typeguard import check_type, TypeCheckError, typechecked
from typing_extensions import ParamSpec
from volscope.exporters import registry

from volscope.monitoring.labels import DEFAULT_LABEL_DIR
from volscope.monitoring.mountinfo import DEFAULT_MOUNTINFO_PATH
from volscope.monitoring.sink.utils import describe_sinks

logger = logging.getLogger(__name__)

T = TypeVar("T")
_P = ParamSpec("_P")
_R = TypeVar("_R")

DEFAULT_CONFIG_PATH = "/etc/volscope/config.toml"

OMEGACONF_DOTLIST_DOCS = (
    "https://omegaconf.readthedocs.io/en/2.3_branch/usage.html#from-a-dot-list"
)

_SHARED_OPTIONS = [
    click.option(
        "--mountinfo",
        "mountinfo_path",
        type=click.Path(dir_okay=False),
        default=DEFAULT_MOUNTINFO_PATH,
        show_default=True,
        help="Mount table to read. If it cannot be read, only / is reported.",
    ),
    click.option(
        "--label-dir",
        type=click.Path(file_okay=False),
        default=DEFAULT_LABEL_DIR,
        show_default=True,
        help="Directory holding one symlink per filesystem label.",
    ),
    click.option(
        "--sink",
        default="stdout",
        show_default=True,
        help="Name of the sink receiving the records.",
    ),
    click.option(
        "-o",
        "--sink-opt",
        "sink_opts",
        multiple=True,
        help="Sink constructor argument as an OmegaConf dot-list item, e.g. "
        "`-o file_path=/tmp/volumes.jsonl`. See [1]",
    ),
    click.option(
        "--log-level",
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
        default="INFO",
        show_default=True,
    ),
    click.option(
        "--log-folder",
        type=click.Path(file_okay=False),
        default="volscope_logs",
        show_default=True,
        help="Directory for the command's rotating log file.",
    ),
    click.option(
        "--stdout",
        is_flag=True,
        default=False,
        help="Log to stdout instead of the log folder.",
    ),
]


def collection_options(f: Callable[_P, _R]) -> Callable[_P, _R]:
    """Options shared by every command which writes records to a sink."""
    for option in reversed(_SHARED_OPTIONS):
        f = option(f)
    return f


def references_epilog(refs: Iterable[str]) -> str:
    """Click-formatted, numbered list of references.

    >>> references_epilog(["r1", "r2"])
    '\\x08\\nReferences:\\n  [1]: r1\\n  [2]: r2'
    """
    numbered = "\n".join(f"[{i}]: {ref}" for i, ref in enumerate(refs, start=1))
    return "\b\nReferences:\n" + textwrap.indent(numbered, "  ")


def _sinks_epilog() -> str:
    # every sink paragraph is marked with \b so click keeps its layout
    sections = describe_sinks(registry).strip().split("\n\n")
    return "\n\n".join("\b\n" + textwrap.indent(s, "  ") for s in sections)


def volscope_command(
    cls: Type[click.Command] = click.Command,
    context_settings: Optional[Dict[str, Any]] = None,
) -> Callable[[Callable[..., T]], click.Command]:
    """`click.command` whose help lists the available sinks."""
    return click.command(
        cls=cls,
        context_settings=context_settings,
        epilog="Sinks:\n\n"
        + _sinks_epilog()
        + "\n\n"
        + references_epilog([OMEGACONF_DOTLIST_DOCS]),
    )


def _read_table(path: Path, name: str) -> Dict[str, Any]:
    with path.open("rb") as f:
        try:
            document = tomli.load(f)
        except tomli.TOMLDecodeError as e:
            raise click.BadParameter(f"{path} does not contain valid TOML.") from e

    if name not in document:
        raise click.BadParameter(
            f"'{name}' is not a top-level table name in {path}. "
            f"Valid names: {list(document)}"
        )
    try:
        return check_type(document[name], Dict[str, Any])
    except TypeCheckError as e:
        raise click.BadParameter(f"'{name}' in {path} is not a table.") from e


def _apply_config(name: str) -> Callable[[click.Context, click.Parameter, Path], None]:
    @typechecked
    def callback(ctx: click.Context, param: click.Parameter, path: Path) -> None:
        if path == Path("/dev/null") or not path.exists():
            logger.debug("No config at %s", path)
            return

        try:
            table = _read_table(path, name)
        except click.BadParameter as e:
            e.ctx = ctx
            e.param = param
            raise
        logger.info("Loaded table '%s' from %s", name, path)
        ctx.default_map = {**(ctx.default_map or {}), **table}

    return callback


def toml_config_option(
    name: str,
    *,
    default_config_path: Union[str, Path] = DEFAULT_CONFIG_PATH,
) -> Callable[[Callable[_P, _R]], Callable[_P, _R]]:
    """Add `--config`, which loads option defaults from table `name` of a TOML file.

    A missing file or `/dev/null` count as an empty table. Values given on the
    command line take precedence over the file, which takes precedence over the
    command's own defaults. On a group, subtables hold the defaults of
    subcommands, e.g. `[volscope.volumes]` for `volscope volumes`.
    """
    return click.option(
        "--config",
        type=click.Path(dir_okay=False, path_type=Path),
        callback=_apply_config(name),
        default=default_config_path,
        show_default=True,
        is_eager=True,
        expose_value=False,
        help=f"TOML file whose '{name}' table provides option defaults.",
    )
