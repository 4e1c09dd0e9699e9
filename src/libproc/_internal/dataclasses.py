""":mod:`dataclasses` utilities.

Note
----
This is an internal API not covered by versioning policy.
"""

from __future__ import annotations

import dataclasses
import typing as t
from operator import attrgetter

if t.TYPE_CHECKING:
    from _typeshed import DataclassInstance


class SkipDefaultFieldsReprMixin:
    r"""Leave fields still at their default out of a dataclass ``repr()``.

    Launch descriptions carry many knobs that are rarely touched; only the ones
    that differ from the default are interesting in logs.

    Notes
    -----
    Credit: Pietro Oldrati, 2022-05-08, Unilicense

    https://stackoverflow.com/a/72161437/1396928

    Examples
    --------
    >>> @dataclasses.dataclass(repr=False)
    ... class Launch(SkipDefaultFieldsReprMixin):
    ...     args: list
    ...     shell: bool = False
    ...     cwd: t.Optional[str] = None

    >>> Launch(['true'])
    Launch(args=['true'])

    >>> Launch(['echo hi'], shell=True)
    Launch(args=['echo hi'], shell=True)
    """

    def __repr__(self: DataclassInstance) -> str:
        """Omit default fields in object representation."""
        changed = (
            (f.name, attrgetter(f.name)(self))
            for f in dataclasses.fields(self)
            if attrgetter(f.name)(self) != f.default
        )
        return "{}({})".format(
            self.__class__.__name__,
            ", ".join(f"{name}={value!r}" for name, value in changed),
        )
