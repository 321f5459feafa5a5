"""Polynomials with real coefficients, stored lowest power first."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from functools import reduce
from itertools import zip_longest


class Polynomial:
    """An immutable polynomial whose ``coefficients[k]`` multiplies ``t**k``."""

    __slots__ = ("_coefficients",)

    def __init__(self, coefficients: Iterable[float]) -> None:
        coeffs = tuple(float(c) for c in coefficients)
        if not coeffs:
            raise ValueError("polynomials must be of order >= 0")
        self._coefficients = coeffs

    @property
    def coefficients(self) -> tuple[float, ...]:
        """The coefficients, lowest power first."""
        return self._coefficients

    @property
    def degree(self) -> int:
        return len(self._coefficients) - 1

    def __len__(self) -> int:
        return len(self._coefficients)

    def __iter__(self) -> Iterator[float]:
        return iter(self._coefficients)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Polynomial):
            return NotImplemented
        return self._coefficients == other._coefficients

    def __hash__(self) -> int:
        return hash(self._coefficients)

    def __repr__(self) -> str:
        return f"Polynomial({list(self._coefficients)!r})"

    def multiply(self, other: Polynomial) -> Polynomial:
        """Return the product of this polynomial and ``other``."""
        result = [0.0] * (len(self) + len(other) - 1)
        for shift, b in enumerate(other._coefficients):
            for offset, a in enumerate(self._coefficients):
                result[shift + offset] += a * b
        return Polynomial(result)

    def add(self, other: Polynomial) -> Polynomial:
        """Return the sum of this polynomial and ``other``."""
        return Polynomial(
            a + b
            for a, b in zip_longest(self._coefficients, other._coefficients, fillvalue=0.0)
        )

    def power(self, n: int) -> Polynomial:
        """Return this polynomial raised to the non-negative integer power ``n``."""
        if n < 0:
            raise ValueError("only non-negative powers of polynomials are supported")
        if n == 0:
            return Polynomial([1.0])
        result = self
        for _ in range(n - 1):
            result = result.multiply(self)
        return result

    def evaluate(self, x: float) -> float:
        """Return the value of the polynomial at ``x``."""
        return reduce(lambda acc, c: acc * x + c, reversed(self._coefficients), 0.0)

    def integrate(self, value: float, x: float) -> Polynomial:
        """Return the antiderivative whose value at ``x`` is ``value``."""
        raised = [0.0, *(c / k for k, c in enumerate(self._coefficients, start=1))]
        constant = Polynomial(raised).evaluate(x)
        raised[0] = value - constant
        return Polynomial(raised)

    __call__ = evaluate

    def __mul__(self, other: Polynomial) -> Polynomial:
        if not isinstance(other, Polynomial):
            return NotImplemented
        return self.multiply(other)

    def __add__(self, other: Polynomial) -> Polynomial:
        if not isinstance(other, Polynomial):
            return NotImplemented
        return self.add(other)

    def __pow__(self, n: int) -> Polynomial:
        return self.power(n)