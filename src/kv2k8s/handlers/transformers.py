# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/kv2k8s/handlers/transformers.py

from __future__ import annotations

import base64
import binascii
from typing import Callable, List, Sequence

from kv2k8s.controller.errors import TransformError


def _trim(value: str) -> str:
    return value.strip()


def _base64_decode(value: str) -> str:
    try:
        return base64.b64decode(value.encode("ascii"), validate=True).decode("utf-8")
    except (binascii.Error, UnicodeError) as e:
        raise TransformError(f"base64decode failed: {e}") from e


def _base64_encode(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("ascii")


TRANSFORMS: dict[str, Callable[[str], str]] = {
    "trim": _trim,
    "base64decode": _base64_decode,
    "base64encode": _base64_encode,
}


class Transformer:
    """An ordered chain of value transforms, validated on construction."""

    def __init__(self, names: Sequence[str] = ()):
        unknown = [n for n in names if n not in TRANSFORMS]
        if unknown:
            raise TransformError(
                f"unsupported transform(s): {', '.join(unknown)} "
                f"(valid: {', '.join(sorted(TRANSFORMS))})"
            )
        self.names: List[str] = list(names)

    def __call__(self, value: str) -> str:
        for name in self.names:
            value = TRANSFORMS[name](value)
        return value
