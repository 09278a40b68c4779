"""Bottom-up rewriting to a fixed point.

Children are simplified first; then the rules registered for the node's
type are tried in table order and the first one that fires replaces the
node, whose replacement is simplified again. Every rule returns either
a replacement or None. Rules other than the flattening ones only look at
flat nodes, and numeric folding is exact (rationals through Fraction,
reals rounded once at the end), so the fixed point does not depend on
the order of the table.
"""
from fractions import Fraction
from typing import List, Dict, Optional, Callable, Tuple, Union
import logging
import math

from .expressions import (
    Expr, Integer, Real, Addition, Multiplication, Power, Logarithm,
    Subtraction, Division, Sin, Cos, Operands,
    is_integer_power, is_rational, compare_sequences, rational,
    zero, one, minus_one,
)

log = logging.getLogger(__name__)

Numeric = Union[Fraction, float]
Rule = Callable[[Expr], Optional[Expr]]
RuleTable = Dict[type, Tuple[Rule, ...]]

# Exact powers whose result would need more bits than this stay unevaluated
MAX_EXACT_BITS = 1 << 16

RULES : RuleTable = {}

def rule(*kinds):
    def _decorator_(fn):
        for kind in kinds:
            RULES[kind] = RULES.get(kind, ()) + (fn,)
        return fn
    return _decorator_

def simplify(expr, rules : Optional[RuleTable] = None):
    if rules is None:
        rules = RULES
    node = expr.apply(lambda x: simplify(x, rules))
    for fn in rules.get(type(node), ()):
        result = fn(node)
        if result is None or result == node:
            continue
        log.debug("%s: %s => %s", fn.__name__, node, result)
        return simplify(result, rules)
    return node

# =============================== #
#          Numeric helpers        #
# =============================== #

def as_fraction(u) -> Optional[Fraction]:
    if isinstance(u, Integer):
        return Fraction(u.value)
    if is_integer_power(u):
        base = u.argument.value
        exp = u.modifier.value
        if base == 0 and exp < 0:
            return None
        return exact_power(Fraction(base), exp)
    if isinstance(u, Multiplication) and is_rational(u):
        total = Fraction(1)
        for factor in u.operands:
            value = as_fraction(factor)
            if value is None:
                return None
            total *= value
        return total
    return None

def exact_power(b : Fraction, n : int) -> Optional[Fraction]:
    if abs(b) not in (0, 1):
        bits = max(b.numerator.bit_length(), b.denominator.bit_length())
        if bits * abs(n) > MAX_EXACT_BITS:
            return None
    return b ** n

def as_number(u) -> Optional[Numeric]:
    if isinstance(u, Real):
        return u.value
    return as_fraction(u)

def from_number(value : Numeric):
    if isinstance(value, float):
        return Real(value)
    return rational(value)

def to_float(value : Fraction) -> float:
    try:
        return float(value)
    except OverflowError:
        return math.copysign(math.inf, value)

def exact_sum(values) -> Numeric:
    total = sum((v for v in values if isinstance(v, Fraction)), Fraction(0))
    floats = [v for v in values if isinstance(v, float)]
    if not floats:
        return total
    if not all(math.isfinite(v) for v in floats):
        return sum(floats, to_float(total))
    return to_float(total + sum(map(Fraction, floats), Fraction(0)))

def exact_product(values) -> Numeric:
    total = Fraction(1)
    for v in values:
        if isinstance(v, Fraction):
            total *= v
    floats = [v for v in values if isinstance(v, float)]
    if not floats:
        return total
    if not all(math.isfinite(v) for v in floats):
        return math.prod(floats) * to_float(total)
    return to_float(total * math.prod(map(Fraction, floats)))

def split_numeric(operands : Operands):
    """Separate foldable numeric operands from the rest, keeping order."""
    numeric = operands.reals() + [x for x in operands.rationals() if as_fraction(x) is not None]
    numeric = Operands(numeric).items()
    rest = [x for x in operands if as_number(x) is None]
    return numeric, rest

def split_term(u) -> Tuple[Numeric, Expr]:
    """Split a sum operand into numeric coefficient and symbolic term."""
    if isinstance(u, Multiplication):
        numeric, rest = split_numeric(u.operands)
        coefficient = exact_product([as_number(x) for x in numeric])
        if len(rest) == 1:
            return coefficient, rest[0]
        return coefficient, Multiplication(rest)
    return Fraction(1), u

def make_term(coefficient : Numeric, term : Expr):
    if coefficient == 1:
        return term
    return Multiplication(factors(from_number(coefficient)) + factors(term))

def factors(u):
    if isinstance(u, Multiplication):
        return u.items()
    return [u]

def terms(u):
    if isinstance(u, Addition):
        return u.items()
    return [u]

def base(u):
    if isinstance(u, Power):
        return u.argument
    else:
        return u

def exponent(u):
    if isinstance(u, Power):
        return u.modifier
    else:
        return one

def _nested(u):
    return u.operands.find_first(lambda x: type(x) is type(u)) is not None

def _same(xs, ys):
    return compare_sequences(Operands(xs).items(), Operands(ys).items()) == 0

# =============================== #
#       Subtraction, Division     #
# =============================== #

@rule(Subtraction, Division)
def desugar(u):
    return u.desugar()

# =============================== #
#            Addition             #
# =============================== #

@rule(Addition)
def flatten_sums(u):
    if _nested(u):
        return Addition([y for x in u.operands for y in terms(x)])

@rule(Addition)
def fold_numeric_terms(u):
    if _nested(u):
        return None
    numeric, rest = split_numeric(u.operands)
    if not numeric:
        return None
    total = exact_sum([as_number(x) for x in numeric])
    if total == 0 and rest:
        folded = []
    elif total == 0:
        folded = [zero]
    else:
        folded = [from_number(total)]
    if _same(folded, numeric):
        return None
    return Addition(rest + folded)

@rule(Addition)
def cancel_opposite_terms(u):
    if _nested(u):
        return None
    _, items = split_numeric(u.operands)
    split = [split_term(x) for x in items]
    for i, (ci, ti) in enumerate(split):
        for j in range(i + 1, len(split)):
            cj, tj = split[j]
            if ti == tj and ci == -cj:
                removed = {i, j}
                numeric, _ = split_numeric(u.operands)
                return Addition(numeric + [x for k, x in enumerate(items) if k not in removed])
    return None

@rule(Addition)
def collect_like_terms(u):
    if _nested(u):
        return None
    numeric, items = split_numeric(u.operands)
    groups : Dict[Expr, List[int]] = {}
    split = [split_term(x) for x in items]
    for i, (_, t) in enumerate(split):
        groups.setdefault(t, []).append(i)
    for t, members in groups.items():
        if len(members) < 2:
            continue
        coefficient = exact_sum([split[i][0] for i in members])
        rest = [x for k, x in enumerate(items) if k not in members]
        if coefficient != 0:
            rest.append(make_term(coefficient, t))
        return Addition(numeric + rest)
    return None

# =============================== #
#          Multiplication         #
# =============================== #

@rule(Multiplication)
def flatten_products(u):
    if _nested(u):
        return Multiplication([y for x in u.operands for y in factors(x)])

@rule(Multiplication)
def cancel_negative_ones(u):
    if _nested(u):
        return None
    signs = u.operands.filter(lambda x: x == minus_one)
    if len(signs) < 2:
        return None
    rest = u.items()
    rest.remove(minus_one)
    rest.remove(minus_one)
    return Multiplication(rest)

@rule(Multiplication)
def fold_numeric_factors(u):
    if _nested(u):
        return None
    numeric, rest = split_numeric(u.operands)
    if not numeric:
        return None
    total = exact_product([as_number(x) for x in numeric])
    if total == 0:
        result = from_number(total)
        return None if _same([result], u.items()) else result
    if total == 1 and rest:
        folded = []
    else:
        folded = factors(from_number(total))
    if _same(folded, numeric):
        return None
    return Multiplication(folded + rest)

@rule(Multiplication)
def distribute_coefficient(u):
    if _nested(u):
        return None
    numeric, rest = split_numeric(u.operands)
    if not numeric or len(rest) != 1 or not isinstance(rest[0], Addition):
        return None
    total = exact_product([as_number(x) for x in numeric])
    if total == 0 or total == 1 or not _same(factors(from_number(total)), numeric):
        return None
    return Addition([Multiplication(numeric + [t]) for t in rest[0].operands])

@rule(Multiplication)
def combine_powers(u):
    if _nested(u):
        return None
    _, items = split_numeric(u.operands)
    groups : Dict[Expr, List[int]] = {}
    for i, x in enumerate(items):
        groups.setdefault(base(x), []).append(i)
    for b, members in groups.items():
        if len(members) < 2:
            continue
        numeric, _ = split_numeric(u.operands)
        rest = [x for k, x in enumerate(items) if k not in members]
        exponents = Addition([exponent(items[i]) for i in members])
        return Multiplication(numeric + rest + [Power(b, exponents)])
    return None

@rule(Addition, Multiplication)
def unwrap_trivial(u):
    if len(u.operands) == 0:
        return Integer(u.identity)
    if len(u.operands) == 1:
        return u.items()[0]
    return None

# =============================== #
#              Power              #
# =============================== #

@rule(Power)
def fold_numeric_power(u):
    b = as_number(u.argument)
    n = as_number(u.modifier)
    if b is None or n is None:
        return None
    if isinstance(b, Fraction) and isinstance(n, Fraction):
        if b == 1:
            return one
        if n.denominator != 1 or (b == 0 and n < 0):
            return None
        result = exact_power(b, int(n))
        return None if result is None else rational(result)
    try:
        return Real(math.pow(to_float(b), to_float(n)))
    except (ValueError, OverflowError, ZeroDivisionError):
        return None

@rule(Power)
def trivial_exponent(u):
    if as_number(u.argument) is not None:
        return None
    if u.modifier == zero:
        return one
    if u.modifier == one:
        return u.argument
    return None

@rule(Power)
def trivial_base(u):
    if u.argument == one and as_number(u.modifier) is None:
        return one
    return None

@rule(Power)
def nested_power(u):
    if (isinstance(u.argument, Power) and isinstance(u.modifier, Integer)
        and as_number(u.argument) is None):
        inner = u.argument
        return Power(inner.argument, Multiplication([inner.modifier, u.modifier]))
    return None

@rule(Power)
def distribute_power(u):
    if (isinstance(u.argument, Multiplication) and isinstance(u.modifier, Integer)
        and as_number(u.argument) is None):
        return Multiplication([Power(f, u.modifier) for f in u.argument.operands])
    return None

# =============================== #
#      Logarithm, Sin and Cos     #
# =============================== #

@rule(Logarithm)
def trivial_logarithm(u):
    if u.modifier == one:
        return None
    if u.argument == one:
        return zero
    if u.argument == u.modifier:
        return one
    return None

@rule(Sin)
def sin_zero(u):
    if u.argument == zero:
        return zero
    return None

@rule(Cos)
def cos_zero(u):
    if u.argument == zero:
        return one
    return None
