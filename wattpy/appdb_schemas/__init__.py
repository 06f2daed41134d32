"""SQL scripts creating each version of the state database."""

from __future__ import annotations

import importlib.resources
import re

SCHEMA_FILE_REGEX = re.compile(r"^schema_v(?P<version>\d+)\.sql$")


def _load_schemas() -> dict[int, str]:
    schemas = {}

    for file in importlib.resources.files(__name__).iterdir():
        match = SCHEMA_FILE_REGEX.match(file.name)

        if match is not None:
            schemas[int(match.group("version"))] = file.read_text()

    return schemas


SCHEMAS = _load_schemas()
