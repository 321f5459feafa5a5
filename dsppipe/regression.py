"""Least-squares line fit over a sequence of equally spaced values."""

from __future__ import annotations

from collections.abc import Iterable


class Regression:
    """Fit ``y = slope * i + y_intercept`` to values indexed by position ``i``.

    Also records the smallest and largest value seen.
    """

    def __init__(self, values: Iterable[float]) -> None:
        self.values = tuple(float(v) for v in values)
        count = len(self.values)
        if count < 2:
            raise ValueError("a line fit needs at least two values")

        minimum = maximum = self.values[0]
        sum_x = sum_y = sum_xy = sum_x2 = 0.0
        for x, y in enumerate(self.values):
            sum_y += y
            sum_x += x
            sum_xy += y * x
            sum_x2 += x * x
            if y > maximum:
                maximum = y
            elif y < minimum:
                minimum = y

        self.slope = (count * sum_xy - sum_x * sum_y) / (count * sum_x2 - sum_x * sum_x)
        self.y_intercept = sum_y / count - self.slope * sum_x / count
        self.min_centroid = minimum
        self.max_centroid = maximum

    def __repr__(self) -> str:
        return f"Regression(slope={self.slope!r}, y_intercept={self.y_intercept!r})"