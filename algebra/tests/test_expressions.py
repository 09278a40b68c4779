"""Tests for the expression model, canonical order and operand queries."""

import dataclasses
from fractions import Fraction
from itertools import permutations

import pytest
from algebra.expressions import (
    Integer, Real, Constant, Variable, Addition, Multiplication, Power,
    Logarithm, Subtraction, Division, Sin, Cos, Operands,
    compare, convert, number, rational, substitute, variables, depends_on,
    ln, log, sqrt, sin, cos, e, pi,
)

x = Variable("x")
y = Variable("y")
z = Variable("z")
a = Variable("a")
seventh = Power(Integer(7), Integer(-1))


class TestConstruction:
    """Tests for leaf constructors and literal promotion."""

    def test_number_int_is_integer(self):
        """Python ints become integer literals."""
        assert isinstance(number(3), Integer)
        assert number(3) == Integer(3)

    def test_number_float_is_real(self):
        """Python floats become real literals."""
        assert isinstance(number(1.5), Real)
        assert number(1.5).value == 1.5

    def test_number_fraction_is_reduced(self):
        """Fractions become the reduced numerator/denominator shape."""
        assert number(Fraction(2, 4)) == Power(Integer(2), Integer(-1))
        assert number(Fraction(-3, 7)) == Multiplication([Integer(-3), seventh])
        assert number(Fraction(4, 2)) == Integer(2)

    def test_rational_of_integer(self):
        """An integral rational is a plain integer literal."""
        assert rational(5) == Integer(5)

    def test_convert_text(self):
        """Text becomes an unbound variable."""
        assert convert("a") == a
        assert convert("a").value is None

    def test_convert_rejects_unsupported(self):
        """Unsupported objects are rejected."""
        with pytest.raises(TypeError):
            convert([1])
        with pytest.raises(TypeError):
            number(True)

    def test_fields_are_promoted(self):
        """Operands given as native literals are promoted."""
        assert Power(x, 2).modifier == Integer(2)
        assert Addition([x, 1]).items() == [Integer(1), x]

    def test_bound_variable(self):
        """A variable may carry a value."""
        bound = Variable("x", 2)
        assert bound.value == 2.0
        assert bound.label == "x"

    def test_frozen(self):
        """Nodes cannot be mutated after construction."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            x.label = "w"

    def test_clone(self):
        """Clones are equal but independently owned."""
        expr = sin(x) * (y + 1) ** 2
        copy = expr.clone()
        assert copy == expr
        assert copy is not expr
        assert copy.items()[0] is not expr.items()[0]


class TestOperators:
    """Tests for the operator combinators."""

    def test_addition(self):
        assert x + 1 == Addition([x, Integer(1)])
        assert 1 + x == Addition([Integer(1), x])

    def test_addition_flattens(self):
        """Chained sums build one n-ary node."""
        assert (x + y) + 1 == Addition([x, y, Integer(1)])
        assert x + (y + z) == (z + y) + x

    def test_subtraction_is_association(self):
        assert isinstance(x - y, Subtraction)
        assert (x - y).lhs == x
        assert 1 - x == Subtraction(Integer(1), x)

    def test_multiplication(self):
        assert x * 2 == Multiplication([Integer(2), x])
        assert 2 * x * y == Multiplication([y, x, Integer(2)])

    def test_division_is_association(self):
        assert isinstance(x / y, Division)
        assert 1 / x == Division(Integer(1), x)

    def test_power(self):
        assert x ** 2 == Power(x, Integer(2))
        assert 2 ** x == Power(Integer(2), x)

    def test_negation(self):
        assert -x == Multiplication([Integer(-1), x])

    def test_positional_equality(self):
        """Binary nodes never swap roles."""
        assert x - y != y - x
        assert x / y != y / x
        assert Power(x, y) != Power(y, x)
        assert log(x, y) != log(y, x)


class TestCanonicalOrder:
    """Tests for the total order over expressions."""

    KINDS = [
        Integer(5),
        Real(0.5),
        e,
        x,
        Multiplication([x, y]),
        Power(x, Integer(2)),
        Addition([x, y]),
        ln(x),
        sin(x),
        Subtraction(x, y),
        Division(x, y),
    ]

    def test_kind_rank(self):
        """Kinds sort in their documented rank."""
        shuffled = list(reversed(self.KINDS))
        assert sorted(shuffled) == self.KINDS

    def test_distinct_kinds_never_equal(self):
        for i, u in enumerate(self.KINDS):
            for j, v in enumerate(self.KINDS):
                assert (u == v) == (i == j)

    def test_antisymmetric(self):
        for u in self.KINDS:
            for v in self.KINDS:
                assert compare(u, v) == -compare(v, u)

    def test_integer_by_value(self):
        assert Integer(-1) < Integer(2)
        assert Integer(2) != Real(2.0)

    def test_variables_by_label(self):
        assert Variable("a") < Variable("b")

    def test_unbound_before_bound(self):
        assert Variable("x") < Variable("x", 1.0)
        assert Variable("x") != Variable("x", 1.0)

    def test_lexicographic_operands(self):
        """Operand sequences compare element-wise, shorter prefix first."""
        assert Multiplication([x]) < Multiplication([x, y])
        assert Multiplication([x, y]) < Multiplication([x, z])

    def test_functions_by_name(self):
        assert cos(x) < sin(x)

    def test_nan_equals_itself(self):
        nan = float("nan")
        assert Real(nan) == Real(nan)
        assert hash(Real(nan)) == hash(Real(nan))
        assert Real(1.0) < Real(nan)

    @pytest.mark.parametrize("symbol", [Variable, Constant])
    def test_nan_binding(self, symbol):
        """A NaN binding equals only itself and keeps equality transitive."""
        nan = float("nan")
        one, missing, two = symbol("k", 1.0), symbol("k", nan), symbol("k", 2.0)
        assert one != missing
        assert missing != two
        assert symbol("k", nan) == missing
        assert hash(symbol("k", nan)) == hash(missing)
        assert sorted([missing, two, one]) == [one, two, missing]

    def test_unbound_constant(self):
        assert Constant("k").value is None
        assert Constant("k") < Constant("k", 1.0)
        assert Constant("k") != Constant("k", 1.0)

    def test_transitive_on_nested(self):
        items = [x + 1, x * y, Power(x + 1, 2), x + 2, Multiplication([x, x + 1])]
        ordered = sorted(items)
        for i in range(len(ordered)):
            for j in range(i, len(ordered)):
                assert compare(ordered[i], ordered[j]) <= 0


class TestEqualityAndHashing:
    """Tests for structural equality of commutative nodes."""

    OPERANDS = [x, y, Integer(2), sin(x)]

    def test_sum_permutations(self):
        expected = Addition(self.OPERANDS)
        for p in permutations(self.OPERANDS):
            assert Addition(list(p)) == expected
            assert hash(Addition(list(p))) == hash(expected)

    def test_product_permutations(self):
        expected = Multiplication(self.OPERANDS)
        for p in permutations(self.OPERANDS):
            assert Multiplication(list(p)) == expected
            assert hash(Multiplication(list(p))) == hash(expected)

    def test_duplicates_retained(self):
        assert len(Addition([x, x]).operands) == 2
        assert Addition([x, x]) != Addition([x])

    def test_sum_is_not_product(self):
        assert Addition([x, y]) != Multiplication([x, y])

    def test_usable_as_keys(self):
        assert len({x + 1, 1 + x, x + 2}) == 2


class TestOperandQueries:
    """Tests for the classification queries of the operand container."""

    def test_items_canonical(self):
        assert Operands([y, Integer(2), x]).items() == [Integer(2), x, y]

    def test_reals(self):
        items = Operands([Integer(1), Integer(2), Integer(3), Real(1.0), Real(2.0), Real(3.0)])
        assert len(items.reals()) == 3
        assert Real(1.0) in items.reals()
        assert Real(2.0) in items.reals()
        assert Real(3.0) in items.reals()

    def test_numerators(self):
        items = Operands([Integer(1), Integer(2), Integer(3), Real(1.0), Real(2.0), Real(3.0)])
        assert len(items.rational_numerators()) == 3
        assert Integer(1) in items.rational_numerators()
        assert Integer(3) in items.rational_numerators()

    def test_denominators(self):
        items = Operands([
            Integer(1), Integer(2), Integer(3),
            Power(Integer(5), Integer(-1)),
            Power(Integer(2), Integer(-1)),
            Power(Integer(3), Integer(-1)),
        ])
        denominators = items.rational_denominators()
        assert len(denominators) == 3
        assert Integer(2) in denominators
        assert Integer(3) in denominators
        assert Integer(5) in denominators

    def test_rationals(self):
        items = Operands([
            Integer(1),
            a,
            Multiplication([Integer(1), seventh]),
            Multiplication([Integer(2), seventh]),
            Multiplication([Integer(3), seventh]),
            Multiplication([Integer(3), seventh, seventh]),
        ])
        assert len(items.rationals()) == 5
        assert Integer(1) in items.rationals()
        assert Multiplication([Integer(3), seventh, seventh]) in items.rationals()
        assert items.non_rationals() == [a]

    def test_non_rationals(self):
        items = Operands([
            Integer(1),
            a,
            Multiplication([Integer(5), seventh]),
            Multiplication([a, seventh]),
            Multiplication([Integer(3), seventh]),
            Multiplication([Integer(3), seventh, seventh]),
        ])
        assert len(items.non_rationals()) == 2
        assert a in items.non_rationals()
        assert Multiplication([a, seventh]) in items.non_rationals()

    def test_rationals_look_one_product_deep(self):
        """A product nested inside a product is not a numerator or denominator."""
        nested = Multiplication([Integer(2), Multiplication([Integer(3), seventh])])
        assert Operands([nested]).rationals() == []

    def test_symbolics(self):
        items = Operands([
            Integer(1), Integer(2), Real(3.0), seventh,
            a, Variable("b"), Power(Integer(2), Real(0.5)),
        ])
        assert items.symbolics() == [a, Variable("b"), Power(Integer(2), Real(0.5))]

    def test_filter(self):
        items = Operands([Integer(1), Integer(2), Integer(3), a, Variable("b"), Variable("c")])
        filtered = items.filter(lambda u: isinstance(u, Integer))
        assert filtered == [Integer(1), Integer(2), Integer(3)]

    def test_find_first(self):
        items = Operands([y, Integer(1), x])
        assert items.find_first(lambda u: isinstance(u, Variable)) == x
        assert items.find_first(lambda u: isinstance(u, Real)) is None

    def test_map_is_not_resorted(self):
        items = Operands([Integer(1), Integer(2), Integer(4)])
        mapped = items.map(lambda u: Integer(-u.value))
        assert mapped == [Integer(-1), Integer(-2), Integer(-4)]


class TestRendering:
    """Tests for infix rendering."""

    @pytest.mark.parametrize("expr, text", [
        (x + 1, "1 + x"),
        (x - y, "x - y"),
        (x * y, "x*y"),
        (2 * x, "2*x"),
        (-x, "-x"),
        (x / y, "x / y"),
        (x ** 2, "x^2"),
        ((x + 1) ** 2, "(1 + x)^2"),
        (Power(Integer(-2), x), "(-2)^x"),
        (x - (y - 1), "x - (y - 1)"),
        (number(Fraction(2, 3)), "2/3"),
        (Power(Integer(3), Integer(-1)), "1/3"),
        (Addition([x, Multiplication([Integer(-1), y])]), "x - y"),
        (Multiplication([x, Power(y, Integer(-1))]), "x/y"),
        (Multiplication([x, Power(y, Integer(-2))]), "x/y^2"),
        (ln(x), "ln(x)"),
        (log(x, 2), "log(x, 2)"),
        (sin(x), "sin(x)"),
        (sqrt(x), "x^(1/2)"),
        (Addition([]), "0"),
        (Multiplication([]), "1"),
        (Real(2.5), "2.5"),
        (x * y + 2, "2 + x*y"),
    ])
    def test_infix(self, expr, text):
        assert str(expr) == text


class TestQueries:
    """Tests for substitution and variable queries."""

    def test_variables(self):
        assert variables(sin(x) * y + pi) == {"x", "y"}

    def test_depends_on(self):
        assert depends_on(ln(x + 1), "x")
        assert not depends_on(ln(y + 1), "x")
        assert not depends_on(Constant("x", 1.0), "x")

    def test_substitute_binds_numbers(self):
        bound = substitute(x + y, {"x": 2})
        assert Variable("x", 2.0) in bound.items()
        assert y in bound.items()

    def test_substitute_replaces_expressions(self):
        assert substitute(x ** 2, {"x": y + 1}) == Power(y + 1, Integer(2))

    def test_substitute_leaves_original(self):
        expr = x * 2
        substitute(expr, {"x": 3})
        assert expr == Multiplication([Integer(2), x])
