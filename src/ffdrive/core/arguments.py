"""Ordered command-line argument lists.

An ArgumentList holds the tokens of one logical option group (global
options, one input's options, one output's audio options, ...). Groups are
linearized by the command assembler in a fixed order, so each list only has
to preserve its own insertion order.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence


def _to_token(value: object) -> str:
    if isinstance(value, str):
        return value
    return str(value)


class ArgumentList:
    """Ordered, mutable list of command-line tokens.

    Tokens are stored flat, in the order they were added. Flags are
    looked up by name, so find() and remove() work regardless of the value
    that follows them.

    Example:
        >>> args = ArgumentList()
        >>> args.add("-b:a", "128k")
        >>> args.add("-ac 2")
        >>> args.get()
        ['-b:a', '128k', '-ac', '2']
    """

    __slots__ = ("_tokens",)

    def __init__(self, tokens: Iterable[object] | None = None) -> None:
        self._tokens: list[str] = [_to_token(t) for t in tokens] if tokens else []

    def add(self, *tokens: object) -> None:
        """Append one logical argument.

        A single string made of exactly two whitespace-separated words is
        split into a flag/value pair ("-ss 10" becomes ["-ss", "10"]).
        Calls with several arguments, or with a single list, are appended
        verbatim and never split.

        Args:
            *tokens: A flag, a flag and its values, or one sequence of tokens.
        """
        if len(tokens) == 1:
            (token,) = tokens
            if isinstance(token, str):
                words = token.split()
                if len(words) == 2:
                    self._tokens.extend(words)
                else:
                    self._tokens.append(token)
                return
            if isinstance(token, Sequence):
                self._tokens.extend(_to_token(t) for t in token)
                return
        self._tokens.extend(_to_token(t) for t in tokens)

    def find(self, flag: str, arity: int = 0) -> list[str] | None:
        """Find the values following the most recent occurrence of a flag.

        Args:
            flag: Flag name, e.g. "-b:v".
            arity: Number of values to return after the flag.

        Returns:
            List of up to `arity` values, or None if the flag is absent.
        """
        for index in range(len(self._tokens) - 1, -1, -1):
            if self._tokens[index] == flag:
                return self._tokens[index + 1 : index + 1 + arity]
        return None

    def remove(self, flag: str, arity: int = 0) -> None:
        """Remove the first occurrence of a flag and `arity` following values.

        Removing an absent flag is a no-op.
        """
        try:
            index = self._tokens.index(flag)
        except ValueError:
            return
        del self._tokens[index : index + 1 + arity]

    def replace(self, flag: str, *values: object) -> None:
        """Set a single-valued option, dropping any earlier value for it."""
        while self.find(flag) is not None:
            self.remove(flag, len(values))
        self.add(flag, *values)

    def clear(self) -> None:
        """Remove all tokens."""
        self._tokens.clear()

    def get(self) -> list[str]:
        """Return a copy of the flattened token sequence."""
        return list(self._tokens)

    def clone(self) -> ArgumentList:
        """Return an independent copy of this list."""
        return ArgumentList(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._tokens))

    def __bool__(self) -> bool:
        return bool(self._tokens)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ArgumentList):
            return self._tokens == other._tokens
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"ArgumentList({self._tokens!r})"
