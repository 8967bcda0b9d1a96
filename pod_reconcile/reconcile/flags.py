"""Expansion of a flag mapping into command line arguments."""

from collections.abc import Mapping, Sequence

Scalar = str | int | float | bool
FlagValue = Scalar | Sequence[Scalar]


def _render(value: Scalar) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _flag_args(key: str, value: Scalar) -> list[str]:
    # boolean podman options only take their value in the --key=value form
    if isinstance(value, bool):
        return [f"--{key}={_render(value)}"]
    return [f"--{key}", _render(value)]


def build_flag_args(flags: Mapping[str, FlagValue]) -> list[str]:
    """Scalar values become one flag, sequences repeat the flag once per item.

    >>> build_flag_args({"label": ["a=b", "c=d"], "publish": "8080:80"})
    ['--label', 'a=b', '--label', 'c=d', '--publish', '8080:80']
    """
    args: list[str] = []
    for key, value in flags.items():
        if not key:
            raise ValueError("Flag names must not be empty")
        if isinstance(value, Sequence) and not isinstance(value, str):
            for item in value:
                args.extend(_flag_args(key, item))
        else:
            args.extend(_flag_args(key, value))
    return args


def parse_flag_assignments(assignments: Sequence[str]) -> dict[str, FlagValue]:
    """Parse ``KEY=VALUE`` strings; a repeated key collects its values in a list."""
    flags: dict[str, FlagValue] = {}
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        if not sep or not key:
            raise ValueError(f"Expected KEY=VALUE, got {assignment!r}")
        if key in flags:
            previous = flags[key]
            if isinstance(previous, list):
                previous.append(value)
            else:
                flags[key] = [previous, value]
        else:
            flags[key] = value
    return flags
