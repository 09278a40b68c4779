"""Distributive normalization.

Purely structural: products are distributed over sums and sums raised
to non-negative integer powers are multiplied out, but nothing is
folded. Run simplify() afterwards to collect the result.
"""
import logging

from .expressions import (
    Integer, Addition, Multiplication, Power, Subtraction, Division, one,
)

log = logging.getLogger(__name__)

def expand(expr):
    if isinstance(expr, (Subtraction, Division)):
        return expand(expr.desugar())
    elif isinstance(expr, Multiplication):
        return distribute(flatten(Multiplication, [expand(x) for x in expr.operands]))
    elif isinstance(expr, Addition):
        return Addition(flatten(Addition, [expand(x) for x in expr.operands]))
    elif isinstance(expr, Power):
        return expand_power(expand(expr.argument), expand(expr.modifier))
    else:
        return expr.apply(expand)

def flatten(cls, items):
    out = []
    for x in items:
        if isinstance(x, cls):
            out.extend(x.operands)
        else:
            out.append(x)
    return out

def distribute(factors):
    for i, factor in enumerate(factors):
        if isinstance(factor, Addition):
            rest = factors[:i] + factors[i+1:]
            if not rest:
                return factor
            log.debug("distribute %s over %d factor(s)", factor, len(rest))
            terms = [expand(Multiplication([term] + rest)) for term in factor.operands]
            return Addition(flatten(Addition, terms))
    return Multiplication(factors)

def expand_power(argument, modifier):
    if (isinstance(argument, Addition) and isinstance(modifier, Integer)
        and modifier.value >= 0):
        if modifier.value == 0:
            return one
        return expand(Multiplication([argument] * modifier.value))
    return Power(argument, modifier)
