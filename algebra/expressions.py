from dataclasses import dataclass, fields
from fractions import Fraction
from functools import cmp_to_key, total_ordering
from typing import List, Dict, Optional, Callable, Any, Iterator, Set
import numbers
import math

def _cmp(a, b):
    return (a > b) - (a < b)

@total_ordering
@dataclass(eq=False, frozen=True)
class Expr:
    """Immutable expression tree node.

    Equality, ordering and hashing are structural and all derive from
    compare(), so equal trees hash equal and sort next to each other.
    """
    precedence = 1000
    kind = -1

    def __post_init__(self):
        validate(self)

    def __str__(self):
        return self.stringify(default_repr)

    def __eq__(self, other):
        if isinstance(other, Expr):
            return compare(self, other) == 0
        return NotImplemented

    def __lt__(self, other):
        if isinstance(other, Expr):
            return compare(self, other) < 0
        return NotImplemented

    def __hash__(self):
        return hash((self.kind,) + self._key())

    def __add__(self, other):
        return add(self, convert(other))

    def __radd__(self, other):
        return add(convert(other), self)

    def __sub__(self, other):
        return Subtraction(self, convert(other))

    def __rsub__(self, other):
        return Subtraction(convert(other), self)

    def __mul__(self, other):
        return mul(self, convert(other))

    def __rmul__(self, other):
        return mul(convert(other), self)

    def __truediv__(self, other):
        return Division(self, convert(other))

    def __rtruediv__(self, other):
        return Division(convert(other), self)

    def __pow__(self, other):
        return Power(self, convert(other))

    def __rpow__(self, other):
        return Power(convert(other), self)

    def __neg__(self):
        return neg(self)

    def apply(self, fn):
        attrs = {}
        for f in fields(self):
            a = getattr(self, f.name)
            attrs[f.name] = fn(a) if isinstance(a, Expr) else a
        return type(self)(**attrs)

    def subexpressions(self):
        for f in fields(self):
            a = getattr(self, f.name)
            if isinstance(a, Expr):
                yield a

    def clone(self):
        return self.apply(lambda x: x.clone())

    def _key(self):
        return tuple(self.subexpressions())

    def _cmp(self, other):
        return compare_sequences(list(self.subexpressions()), list(other.subexpressions()))

# =============================== #
#             Symbols             #
# =============================== #

@dataclass(eq=False, frozen=True)
class Symbol(Expr):
    """Leaf holding a label and, when bound, a numeric value."""

@dataclass(eq=False, frozen=True)
class Integer(Symbol):
    value : int
    kind = 0

    @property
    def label(self):
        return str(self.value)

    @property
    def precedence(self):
        return 15 if self.value < 0 else 1000

    def stringify(self, s):
        return self.label

    def _key(self):
        return (self.value,)

    def _cmp(self, other):
        return _cmp(self.value, other.value)

def _real_key(value):
    # NaN sorts after every number and equals itself
    if math.isnan(value):
        return (1, 0.0)
    return (0, value)

def _bound_key(label, value):
    if value is None:
        return (label, False, (0, 0.0))
    return (label, True, _real_key(value))

@dataclass(eq=False, frozen=True)
class Real(Symbol):
    value : float
    kind = 1

    @property
    def label(self):
        return repr(self.value)

    @property
    def precedence(self):
        return 15 if self.value < 0 else 1000

    def stringify(self, s):
        return self.label

    def _key(self):
        return _real_key(self.value)

    def _cmp(self, other):
        return _cmp(_real_key(self.value), _real_key(other.value))

@dataclass(eq=False, frozen=True)
class Constant(Symbol):
    label : str
    value : Optional[float] = None
    kind = 2

    def stringify(self, s):
        return self.label

    def _key(self):
        return _bound_key(self.label, self.value)

    def _cmp(self, other):
        return _cmp(self._key(), other._key())

@dataclass(eq=False, frozen=True)
class Variable(Symbol):
    label : str
    value : Optional[float] = None
    kind = 3

    def stringify(self, s):
        return self.label

    def _key(self):
        return _bound_key(self.label, self.value)

    def _cmp(self, other):
        return _cmp(self._key(), other._key())

# =============================== #
#       Commutative operands      #
# =============================== #

class Operands:
    """Operand list of an n-ary commutative operator.

    Items are kept sorted by compare() and duplicates are kept. Every
    query below looks at a single level only; map() does not re-sort.
    """
    __slots__ = ("_items",)

    def __init__(self, items):
        self._items = tuple(sorted(items, key=cmp_to_key(compare)))

    def items(self) -> List[Expr]:
        return list(self._items)

    def filter(self, predicate : Callable[[Expr], bool]) -> List[Expr]:
        return [x for x in self._items if predicate(x)]

    def find_first(self, predicate : Callable[[Expr], bool]) -> Optional[Expr]:
        for x in self._items:
            if predicate(x):
                return x
        return None

    def map(self, fn : Callable[[Expr], Any]) -> List[Any]:
        return [fn(x) for x in self._items]

    def reals(self):
        return self.filter(lambda x: isinstance(x, Real))

    def rational_numerators(self):
        return self.filter(lambda x: isinstance(x, Integer))

    def rational_denominators(self):
        return [_power_base(x) for x in self.filter(is_integer_power)]

    def rationals(self):
        return self.filter(is_rational)

    def non_rationals(self):
        return self.filter(lambda x: not is_rational(x))

    def symbolics(self):
        return self.filter(lambda x: not isinstance(x, (Integer, Real)) and not is_integer_power(x))

    def __iter__(self) -> Iterator[Expr]:
        return iter(self._items)

    def __len__(self):
        return len(self._items)

    def __eq__(self, other):
        if isinstance(other, Operands):
            return compare_sequences(self._items, other._items) == 0
        return NotImplemented

    def __hash__(self):
        return hash(self._items)

    def __repr__(self):
        return f"Operands({list(self._items)!r})"

def is_integer_power(u):
    return (isinstance(u, Power)
        and isinstance(u.argument, Integer)
        and isinstance(u.modifier, Integer))

def _power_base(u):
    assert is_integer_power(u), u
    return u.argument

def is_rational(u):
    if isinstance(u, Integer) or is_integer_power(u):
        return True
    if isinstance(u, Multiplication):
        numerators = u.operands.rational_numerators()
        denominators = u.operands.rational_denominators()
        return len(u.operands) == len(numerators) + len(denominators)
    return False

# =============================== #
#      Commutative operations     #
# =============================== #

@dataclass(eq=False, frozen=True)
class CommutativeAssociation(Expr):
    operands : Operands

    def items(self):
        return self.operands.items()

    def apply(self, fn):
        return type(self)([fn(x) for x in self.operands])

    def subexpressions(self):
        yield from self.operands

    def _key(self):
        return tuple(self.operands)

@dataclass(eq=False, frozen=True)
class Multiplication(CommutativeAssociation):
    kind = 4
    precedence = 20
    identity = 1

    def stringify(self, s):
        numerator = []
        denominator = []
        for factor in self.operands:
            if (isinstance(factor, Power) and isinstance(factor.modifier, Integer)
                and factor.modifier.value < 0):
                if factor.modifier.value == -1:
                    denominator.append(factor.argument)
                else:
                    denominator.append(Power(factor.argument, Integer(-factor.modifier.value)))
            else:
                numerator.append(factor)
        sign = ""
        if len(numerator) > 1 and numerator[0] == minus_one:
            sign = "-"
            numerator = numerator[1:]
        out = []
        for i, factor in enumerate(numerator):
            if i == 0 and isinstance(factor, (Integer, Real)):
                out.append(factor.stringify(s))
            else:
                out.append(s(factor, 20))
        text = "*".join(out) or "1"
        for factor in denominator:
            text += "/" + s(factor, 20)
        return sign + text

@dataclass(eq=False, frozen=True)
class Addition(CommutativeAssociation):
    kind = 6
    precedence = 10
    identity = 0

    def stringify(self, s):
        text = ""
        for i, term in enumerate(self.operands):
            t = s(term, 10)
            if i == 0:
                text = t
            elif t.startswith("-"):
                text += " - " + t[1:]
            else:
                text += " + " + t
        return text or "0"

# =============================== #
#    Role-asymmetric operations   #
# =============================== #

@dataclass(eq=False, frozen=True)
class AssociativeOperation(Expr):
    argument : Expr
    modifier : Expr

@dataclass(eq=False, frozen=True)
class Power(AssociativeOperation):
    kind = 5

    @property
    def precedence(self):
        if isinstance(self.modifier, Integer) and self.modifier.value < 0:
            return 20
        return 30

    def stringify(self, s):
        if isinstance(self.modifier, Integer) and self.modifier.value < 0:
            if self.modifier.value == -1:
                return f"1/{s(self.argument, 20)}"
            return f"1/{s(self.argument, 30)}^{-self.modifier.value}"
        return f"{s(self.argument, 30)}^{s(self.modifier, 30)}"

@dataclass(eq=False, frozen=True)
class Logarithm(AssociativeOperation):
    kind = 7

    def stringify(self, s):
        if self.modifier == e:
            return f"ln({s(self.argument)})"
        return f"log({s(self.argument)}, {s(self.modifier)})"

# =============================== #
#           Associations          #
# =============================== #

@dataclass(eq=False, frozen=True)
class Association(Expr):
    lhs : Expr
    rhs : Expr

@dataclass(eq=False, frozen=True)
class Subtraction(Association):
    kind = 9
    precedence = 10

    def desugar(self):
        return Addition([self.lhs, Multiplication([minus_one, self.rhs])])

    def stringify(self, s):
        return f"{s(self.lhs, 10)} - {s(self.rhs, 10)}"

@dataclass(eq=False, frozen=True)
class Division(Association):
    kind = 10
    precedence = 20

    def desugar(self):
        return Multiplication([self.lhs, Power(self.rhs, minus_one)])

    def stringify(self, s):
        return f"{s(self.lhs, 20)} / {s(self.rhs, 20)}"

# =============================== #
#       Elementary functions      #
# =============================== #

@dataclass(eq=False, frozen=True)
class Function(Expr):
    argument : Expr
    kind = 8
    name = "?"

    def stringify(self, s):
        return f"{self.name}({s(self.argument)})"

    def _key(self):
        return (self.name, self.argument)

    def _cmp(self, other):
        c = _cmp(self.name, other.name)
        if c != 0:
            return c
        return compare(self.argument, other.argument)

@dataclass(eq=False, frozen=True)
class Sin(Function):
    name = "sin"
    op = staticmethod(math.sin)

@dataclass(eq=False, frozen=True)
class Cos(Function):
    name = "cos"
    op = staticmethod(math.cos)

# =============================== #
#         Canonical order         #
# =============================== #

def compare(lhs, rhs):
    """Total order over expressions: kind rank first, then the kind's key.

    Ranks: Integer < Real < Constant < Variable < Multiplication < Power
    < Addition < Logarithm < Function < Subtraction < Division.
    """
    if lhs.kind != rhs.kind:
        return _cmp(lhs.kind, rhs.kind)
    return lhs._cmp(rhs)

def compare_sequences(xs, ys):
    for x, y in zip(xs, ys):
        c = compare(x, y)
        if c != 0:
            return c
    return _cmp(len(xs), len(ys))

# =============================== #
#           Construction          #
# =============================== #

def validate(obj):
    for f in fields(obj):
        a = getattr(obj, f.name)
        if f.type is Expr:
            object.__setattr__(obj, f.name, convert(a))
        elif f.type is Operands and not isinstance(a, Operands):
            object.__setattr__(obj, f.name, Operands(convert(x) for x in a))
        elif f.type is float or (f.type == Optional[float] and a is not None):
            object.__setattr__(obj, f.name, float(a))
        a = getattr(obj, f.name)
        if isinstance(f.type, type):
            assert isinstance(a, f.type), f".{f.name} = {a} ? {f.type.__name__}"

def convert(obj):
    if isinstance(obj, Expr):
        return obj
    elif isinstance(obj, str):
        return Variable(obj)
    else:
        return number(obj)

def number(value):
    if isinstance(value, bool):
        raise TypeError(f"number({value!r}): booleans are not numbers")
    if isinstance(value, numbers.Integral):
        return Integer(int(value))
    elif isinstance(value, Fraction):
        return rational(value)
    elif isinstance(value, numbers.Real):
        return Real(float(value))
    raise TypeError(f"number({value!r} : {type(value).__name__})")

def rational(value):
    value = Fraction(value)
    p = value.numerator
    q = value.denominator
    if q == 1:
        return Integer(p)
    elif p == 1:
        return Power(Integer(q), minus_one)
    else:
        return Multiplication([Integer(p), Power(Integer(q), minus_one)])

def add(lhs, rhs):
    return Addition(_splice(Addition, lhs) + _splice(Addition, rhs))

def mul(lhs, rhs):
    return Multiplication(_splice(Multiplication, lhs) + _splice(Multiplication, rhs))

def neg(term):
    return mul(minus_one, term)

def _splice(cls, u):
    if isinstance(u, cls):
        return u.items()
    return [u]

def ln(x):
    return Logarithm(x, e)

def log(x, base):
    return Logarithm(x, base)

def sqrt(x):
    return Power(x, rational(Fraction(1, 2)))

def sin(x):
    return Sin(x)

def cos(x):
    return Cos(x)

# =============================== #
#             Queries             #
# =============================== #

def variables(expr) -> Set[str]:
    out = set()
    def visit(u):
        if isinstance(u, Variable):
            out.add(u.label)
        for a in u.subexpressions():
            visit(a)
    visit(expr)
    return out

def depends_on(expr, label):
    if isinstance(expr, Variable):
        return expr.label == label
    return any(depends_on(a, label) for a in expr.subexpressions())

def substitute(expr, mapping : Dict[str, Any]):
    """Bind or replace variables by label.

    Numbers bind the variable in place; expressions replace it.
    """
    if isinstance(expr, Variable) and expr.label in mapping:
        value = mapping[expr.label]
        if isinstance(value, Expr):
            return value
        return Variable(expr.label, value)
    return expr.apply(lambda x: substitute(x, mapping))

def default_repr(expr, precedence=0):
    if not isinstance(expr, Expr):
        return str(expr)
    elif precedence < expr.precedence:
        return str(expr)
    else:
        return "(" + str(expr) + ")"

zero      = Integer(0)
one       = Integer(1)
minus_one = Integer(-1)
e         = Constant("e", math.e)
pi        = Constant("pi", math.pi)
