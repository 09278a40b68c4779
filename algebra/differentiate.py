from .expressions import (
    Variable, Addition, Multiplication, Power, Logarithm,
    Subtraction, Division, Sin, Cos, Integer,
    depends_on, ln, e, zero, one, minus_one,
)

def differentiate(expr, variable):
    """Derivative of expr with respect to a variable label or Variable.

    The result is not simplified.
    """
    if isinstance(variable, Variable):
        variable = variable.label
    return derive(expr, variable)

def derive(u, x):
    if not depends_on(u, x):
        return zero
    if isinstance(u, Variable):
        return one
    elif isinstance(u, (Subtraction, Division)):
        return derive(u.desugar(), x)
    elif isinstance(u, Addition):
        return Addition([derive(term, x) for term in u.operands])
    elif isinstance(u, Multiplication):
        return product_derivative(u.items(), x)
    elif isinstance(u, Power):
        return power_derivative(u, x)
    elif isinstance(u, Logarithm):
        return logarithm_derivative(u, x)
    elif isinstance(u, Sin):
        return Multiplication([Cos(u.argument), derive(u.argument, x)])
    elif isinstance(u, Cos):
        return Multiplication([minus_one, Sin(u.argument), derive(u.argument, x)])
    raise TypeError(f"derive({u} : {type(u).__name__}, {x!r})")

def product_derivative(xs, x):
    total = []
    for i, factor in enumerate(xs):
        total.append(Multiplication([derive(factor, x)] + xs[:i] + xs[i+1:]))
    return Addition(total)

def power_derivative(u, x):
    base = u.argument
    exp = u.modifier
    if not depends_on(exp, x):
        return Multiplication([exp, Power(base, Addition([exp, minus_one])), derive(base, x)])
    if not depends_on(base, x):
        return Multiplication([u, ln(base), derive(exp, x)])
    return Multiplication([u, Addition([
        Multiplication([derive(exp, x), ln(base)]),
        Multiplication([exp, derive(base, x), Power(base, minus_one)]),
    ])])

def logarithm_derivative(u, x):
    arg = u.argument
    base = u.modifier
    if base == e:
        return Multiplication([derive(arg, x), Power(arg, minus_one)])
    if not depends_on(base, x):
        return Multiplication([derive(arg, x), Power(Multiplication([arg, ln(base)]), minus_one)])
    # log_b(a) = ln(a) / ln(b), quotient rule
    return Multiplication([
        Addition([
            Multiplication([derive(arg, x), Power(arg, minus_one), ln(base)]),
            Multiplication([minus_one, ln(arg), derive(base, x), Power(base, minus_one)]),
        ]),
        Power(ln(base), Integer(-2)),
    ])
