"""Parser configuration.

Options can be passed directly, as a mapping such as ``{"core": False}``, or
loaded from a YAML file::

    core: true
    library_path: gates/custom_qelib.inc
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

__all__ = ["ParserOptions", "load_options", "options_from_mapping"]


@dataclass(frozen=True)
class ParserOptions:
    """Construction options for :class:`qasm2parse.parser.Parser`.

    Attributes
    ----------
    core : bool
        Preload the standard gate library (default ``True``). ``False`` starts
        from an empty symbol table.
    library_path : str | None
        Load the gate library from this file instead of the bundled
        ``qelib1.inc``. Ignored when ``core`` is ``False``.
    """

    core: bool = True
    library_path: Optional[str] = None


def options_from_mapping(data: Mapping[str, Any]) -> ParserOptions:
    """Build :class:`ParserOptions` from a plain mapping.

    Raises
    ------
    ValueError
        On unknown keys or values of the wrong type.
    """
    known = {item.name for item in fields(ParserOptions)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown parser option(s): {', '.join(unknown)}.")
    core = data.get("core", True)
    if not isinstance(core, bool):
        raise ValueError(f"Parser option 'core' must be a boolean, got {core!r}.")
    library_path = data.get("library_path")
    if library_path is not None and not isinstance(library_path, str):
        raise ValueError(f"Parser option 'library_path' must be a string, got {library_path!r}.")
    return ParserOptions(core=core, library_path=library_path)


def load_options(yaml_path: str) -> ParserOptions:
    """Load parser options from a YAML file.

    Parameters
    ----------
    yaml_path : str
        Path to the configuration file. An empty file yields the defaults.

    Returns
    -------
    ParserOptions
        Parsed options.

    Raises
    ------
    FileNotFoundError
        If the supplied path does not exist.
    ValueError
        If the file does not contain a mapping or holds invalid options.
    """
    path = Path(yaml_path)
    content = path.read_text(encoding="utf-8")
    data = yaml.safe_load(content)
    if data is None:
        return ParserOptions()
    if not isinstance(data, dict):
        raise ValueError(f"Parser configuration '{yaml_path}' must contain a mapping at the top level.")
    return options_from_mapping(data)
