# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.

"""Helpers to locate and read the static data files shipped with sitefinder."""

import pathlib

from sitefinder.exceptions import WordListError

PACKAGE_ROOT: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent


def resolve_data_path(path: str | pathlib.Path) -> pathlib.Path:
    """Resolve a configured data path. Relative paths are taken from the package root."""
    data_path = pathlib.Path(path)
    if data_path.is_absolute():
        return data_path
    return PACKAGE_ROOT / data_path


def read_lines(path: str | pathlib.Path) -> list[str]:
    """Read a text file and return its stripped, non-empty lines.

    Raises:
        WordListError if the file can't be read.
    """
    data_path = resolve_data_path(path)
    try:
        content = data_path.read_text(encoding="utf-8")
    except OSError as e:
        raise WordListError(f"Could not read data file {data_path}: {e}") from e
    return [line.strip() for line in content.splitlines() if line.strip()]
