"""In-memory variable book.

Variables are user-named values ("coffee" = 4.5 EUR, "oats" = 380 kcal per 100 g) referenced by
arithmetic lines. The book is an explicitly constructed service; nothing here is global.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator

from src.intent.schema import Variable, VariableType

logger = logging.getLogger(__name__)


class VariableError(ValueError):
    """Raised on invalid variable operations (duplicate or unknown names)."""


class VariableBook:
    """Named variables, unique by normalized name."""

    def __init__(self, variables: list[Variable] | None = None) -> None:
        self._variables: dict[str, Variable] = {}
        for variable in variables or []:
            self.add(variable)

    def __iter__(self) -> Iterator[Variable]:
        return iter(list(self._variables.values()))

    def __len__(self) -> int:
        return len(self._variables)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self._key(name) in self._variables

    @staticmethod
    def _key(name: str) -> str:
        return " ".join(name.lower().split())

    def add(self, variable: Variable) -> Variable:
        """Add a new variable.

        Raises:
            VariableError: If a variable with the same name exists.
        """

        if variable.name in self._variables:
            raise VariableError(f"Variable already exists: {variable.name}")
        self._variables[variable.name] = variable
        logger.debug("variable added name=%s type=%s", variable.name, variable.type)
        return variable

    def update(self, name: str, **changes: object) -> Variable:
        """Replace fields of an existing variable (renames allowed).

        Raises:
            VariableError: If the variable is unknown or the new name is taken.
        """

        current = self.find(name)
        if current is None:
            raise VariableError(f"Unknown variable: {name}")
        updated = Variable.model_validate({**current.model_dump(), **changes})
        if updated.name != current.name and updated.name in self._variables:
            raise VariableError(f"Variable already exists: {updated.name}")
        del self._variables[current.name]
        self._variables[updated.name] = updated
        return updated

    def delete(self, name: str) -> bool:
        return self._variables.pop(self._key(name), None) is not None

    def find(self, name: str, *, type: VariableType | None = None) -> Variable | None:
        variable = self._variables.get(self._key(name))
        if variable is None or (type is not None and variable.type != type):
            return None
        return variable
