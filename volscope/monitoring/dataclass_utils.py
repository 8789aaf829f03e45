# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
import json
from dataclasses import asdict
from typing import Any, Iterable, TYPE_CHECKING

if TYPE_CHECKING:
    from _typeshed import DataclassInstance


def remove_none_dict_factory(pairs: list[tuple[str, object]]) -> dict[str, object]:
    """Dict factory for `dataclasses.asdict` which drops fields set to None."""
    return {key: value for key, value in pairs if value is not None}


def asdict_without_none(data: "DataclassInstance") -> dict[str, Any]:
    return asdict(data, dict_factory=remove_none_dict_factory)


def json_dumps_dataclass_list(data: Iterable["DataclassInstance"]) -> str:
    return json.dumps([asdict_without_none(d) for d in data])
