"""
Exceptions raised by the least-squares descent solvers.
"""


class DimensionMismatch(ValueError):
    """Operand shapes do not conform for the requested operation."""

    def __init__(self, operation: str, expected, got):
        self.operation = operation
        self.expected = expected
        self.got = got
        super().__init__(f"{operation}: expected {expected}, got {got}")
