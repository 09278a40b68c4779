from algebra.expressions import *
from algebra.simplify import simplify
from algebra.expand import expand
from algebra.differentiate import differentiate
from algebra.numeric import into_num, lambdify, EvaluationError
import numpy as np
import logging
import sys

if "-v" in sys.argv:
    logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

x = Variable("x")
y = Variable("y")

examples = [
    number(1) + number(1),
    x - x,
    (-x) * (-x),
    Integer(6) / Integer(-4),
    3 * (x - y) + 3 * y,
    sqrt(x) * sqrt(x),
]

for term in examples:
    print(term, "=", simplify(term))

term = (x + 1) ** 3
print(term, "=", simplify(expand(term)))

f = sin(x ** 2) + x * ln(x)
df = simplify(differentiate(f, "x"))
print("d/dx", f, "=", df)

for value in (0.5, 2.0):
    print(f"  x = {value}:", into_num(substitute(df, {"x": value})))

for term in (x / y, substitute(x, {"x": 1}) / 0):
    try:
        into_num(term)
    except EvaluationError as error:
        print(term, "->", type(error).__name__, error.expression)

xs = np.linspace(0.5, 2.0, 4)
print("f(", xs, ") =", lambdify(f, ["x"])(xs))
