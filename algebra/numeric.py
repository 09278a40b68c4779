from dataclasses import dataclass
from typing import List, Dict, Any, Sequence
import numpy as np
import math
import sys

from .expressions import (
    Expr, Integer, Real, Constant, Variable, Addition, Multiplication,
    Power, Logarithm, Subtraction, Division, Function, Sin, Cos,
)

class EvaluationError(Exception):
    """Numeric evaluation stopped at .expression."""

    def __init__(self, expression, message=None):
        self.expression = expression
        super().__init__(message or str(expression))

class Unresolved(EvaluationError):
    """An unbound variable was reached."""

class DomainError(EvaluationError):
    """A division by zero, a logarithm or power out of its domain, or an overflow."""

def into_num(expr) -> float:
    """Fold expr to a float.

    Binary nodes evaluate left then right and n-ary nodes evaluate in
    canonical order; the first failure is raised and nothing after it
    is evaluated.
    """
    if isinstance(expr, (Integer, Real)):
        try:
            return float(expr.value)
        except OverflowError:
            raise DomainError(expr, f"{expr} overflows")
    elif isinstance(expr, (Constant, Variable)):
        if expr.value is None:
            raise Unresolved(expr, f"unbound symbol {expr.label}")
        return expr.value
    elif isinstance(expr, Subtraction):
        lhs = into_num(expr.lhs)
        rhs = into_num(expr.rhs)
        return finite(expr, lhs - rhs, [lhs, rhs])
    elif isinstance(expr, Division):
        lhs = into_num(expr.lhs)
        rhs = into_num(expr.rhs)
        if rhs == 0:
            raise DomainError(expr, f"division by zero in {expr}")
        return finite(expr, lhs / rhs, [lhs, rhs])
    elif isinstance(expr, Power):
        base = into_num(expr.argument)
        exp = into_num(expr.modifier)
        try:
            return math.pow(base, exp)
        except (ValueError, ZeroDivisionError):
            raise DomainError(expr, f"{expr} is undefined for base {base} and exponent {exp}")
        except OverflowError:
            raise DomainError(expr, f"{expr} overflows")
    elif isinstance(expr, Logarithm):
        arg = into_num(expr.argument)
        base = into_num(expr.modifier)
        if arg <= 0 or base <= 0 or base == 1:
            raise DomainError(expr, f"{expr} is undefined for argument {arg} and base {base}")
        return math.log(arg, base)
    elif isinstance(expr, Addition):
        values = [into_num(term) for term in expr.operands]
        return finite(expr, sum(values, 0.0), values)
    elif isinstance(expr, Multiplication):
        values = [into_num(factor) for factor in expr.operands]
        return finite(expr, math.prod(values), values)
    elif isinstance(expr, Function):
        arg = into_num(expr.argument)
        try:
            return expr.op(arg)
        except ValueError:
            raise DomainError(expr, f"{expr} is undefined for argument {arg}")
    raise TypeError(f"into_num({expr} : {type(expr).__name__})")

def finite(expr, result, values):
    if math.isinf(result) and all(map(math.isfinite, values)):
        raise DomainError(expr, f"{expr} overflows")
    return result

# =============================== #
#      Vectorized evaluation      #
# =============================== #

@dataclass(eq=False)
class CellGet:
    i : int
    def __call__(self, xs):
        return xs[self.i]

@dataclass(eq=False)
class CellValue:
    value : float
    def __call__(self, xs):
        return self.value

@dataclass(eq=False)
class Cell:
    op : Any
    args : List[Any]
    def __call__(self, xs):
        x = [a(xs) for a in self.args]
        return self.op(*x)

def total(*s):
    out = 0.0
    for x in s:
        out = out + x
    return out

def prod(*s):
    out = 1.0
    for x in s:
        out = out * x
    return out

def logarithm(arg, base):
    return np.log(arg) / np.log(base)

def cells(expr, slots : Dict[str, int]):
    def build(u):
        if isinstance(u, Variable):
            if u.label in slots:
                return CellGet(slots[u.label])
            if u.value is None:
                raise Unresolved(u, f"unbound variable {u.label}")
            return CellValue(u.value)
        if isinstance(u, Constant):
            if u.value is None:
                raise Unresolved(u, f"unbound symbol {u.label}")
            return CellValue(u.value)
        if isinstance(u, Integer) and abs(u.value) > sys.float_info.max:
            return CellValue(math.copysign(math.inf, u.value))
        if isinstance(u, (Integer, Real)):
            return CellValue(float(u.value))
        if isinstance(u, Addition):
            return Cell(total, [build(x) for x in u.operands])
        if isinstance(u, Multiplication):
            return Cell(prod, [build(x) for x in u.operands])
        if isinstance(u, Power):
            return Cell(np.power, [build(u.argument), build(u.modifier)])
        if isinstance(u, Logarithm):
            return Cell(logarithm, [build(u.argument), build(u.modifier)])
        if isinstance(u, Subtraction):
            return Cell(np.subtract, [build(u.lhs), build(u.rhs)])
        if isinstance(u, Division):
            return Cell(np.divide, [build(u.lhs), build(u.rhs)])
        if isinstance(u, Sin):
            return Cell(np.sin, [build(u.argument)])
        if isinstance(u, Cos):
            return Cell(np.cos, [build(u.argument)])
        assert False, u
    return build(expr)

def lambdify(expr : Expr, labels : Sequence[str]):
    """Compile expr into a function of one numpy array per label.

    Arrays are broadcast together. Unlike into_num() the compiled
    function follows IEEE semantics: division by zero and domain errors
    produce inf or nan instead of raising.
    """
    slots = {label: i for i, label in enumerate(labels)}
    cell = cells(expr, slots)
    def function(*args):
        if len(args) != len(slots):
            raise TypeError(f"expected {len(slots)} argument(s), got {len(args)}")
        xs = [np.asarray(a, dtype=float) for a in args]
        shape = np.broadcast_shapes(*(x.shape for x in xs))
        with np.errstate(all="ignore"):
            result = np.asarray(cell(xs), dtype=float)
        return np.broadcast_to(result, shape).copy()
    return function
