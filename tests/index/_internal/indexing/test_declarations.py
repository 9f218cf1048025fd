"""Tests for declaration extraction."""

from __future__ import annotations

import pytest

from phpintel.index.models import Classlike, ClasslikeKind, FunctionDef, PropertyDef
from phpintel.index.ops import IndexCoordinator

SOURCE = """<?php
namespace App;

use Lib\\Base;
use Lib\\Contract as C;

const LIMIT = 10, NAME = 'x';
define('GLOBAL_FLAG', true);

/**
 * Helper.
 * @param string $s The input.
 * @return int
 */
function helper($s, ?Base $b = null, int ...$rest) {}

/**
 * A user.
 * @property string $email
 * @method static User make(string $name = null)
 */
abstract class User extends Base implements C, \\Countable
{
    use Named;

    public const ROLE = 'user';

    /** @var int[] */
    protected $ids = [];

    private static ?User $instance = null;

    public function __construct(private readonly string $name, protected int $age = 0) {}

    /** @return static */
    public function fluent() { return $this; }

    abstract protected function run(): void;
}

interface Shape extends \\Countable, C {}

trait Named {}
"""


@pytest.fixture
def indexed(coordinator: IndexCoordinator) -> IndexCoordinator:
    coordinator.index_file("/src/User.php", SOURCE)
    return coordinator


def _classlike(coordinator: IndexCoordinator, fqcn: str) -> Classlike:
    row = coordinator.storage.find_classlike(fqcn)
    assert row is not None, fqcn
    return row


def _methods(coordinator: IndexCoordinator, fqcn: str) -> dict[str, FunctionDef]:
    row = _classlike(coordinator, fqcn)
    assert row.id is not None
    return {m.name: m for m in coordinator.storage.get_methods(row.id)}


def _properties(coordinator: IndexCoordinator, fqcn: str) -> dict[str, PropertyDef]:
    row = _classlike(coordinator, fqcn)
    assert row.id is not None
    return {p.name: p for p in coordinator.storage.get_properties(row.id)}


class TestGlobalConstants:
    """Tests for const declarations and define() calls."""

    def test_const_declaration_is_namespaced(self, indexed: IndexCoordinator) -> None:
        limit = indexed.storage.find_constant("\\App\\LIMIT")
        name = indexed.storage.find_constant("\\App\\NAME")
        assert limit is not None and [t.fqcn for t in limit.types] == ["int"]
        assert limit.default_value == "10"
        assert name is not None and [t.fqcn for t in name.types] == ["string"]

    def test_define_is_global(self, indexed: IndexCoordinator) -> None:
        flag = indexed.storage.find_constant("\\GLOBAL_FLAG")
        assert flag is not None
        assert [t.fqcn for t in flag.types] == ["bool"]
        assert indexed.storage.find_constant("\\App\\GLOBAL_FLAG") is None


class TestGlobalFunctions:
    """Tests for global function extraction."""

    def test_function_row(self, indexed: IndexCoordinator) -> None:
        helper = indexed.storage.find_function("\\App\\helper")
        assert helper is not None
        assert helper.short_description == "Helper."
        assert [t.fqcn for t in helper.return_types] == ["int"]

    def test_parameters(self, indexed: IndexCoordinator) -> None:
        helper = indexed.storage.find_function("\\App\\helper")
        assert helper is not None and helper.id is not None
        params = indexed.storage.get_parameters(helper.id)
        assert [p.name for p in params] == ["s", "b", "rest"]

        s, b, rest = params
        assert [t.fqcn for t in s.types] == ["string"]
        assert s.description == "The input."
        assert [t.fqcn for t in b.types] == ["\\Lib\\Base", "null"]
        assert b.is_nullable
        assert b.default_value == "null"
        assert [t.fqcn for t in rest.types] == ["int[]"]
        assert rest.is_variadic


class TestClasslikes:
    """Tests for class, interface and trait extraction."""

    def test_class_row(self, indexed: IndexCoordinator) -> None:
        user = _classlike(indexed, "\\App\\User")
        assert user.kind == ClasslikeKind.CLASS.value
        assert user.is_abstract
        assert user.has_docblock
        assert user.short_description == "A user."
        assert user.parents == ["\\Lib\\Base"]
        assert user.interfaces == ["\\Lib\\Contract", "\\Countable"]
        assert user.traits == ["\\App\\Named"]

    def test_interface_parents(self, indexed: IndexCoordinator) -> None:
        shape = _classlike(indexed, "\\App\\Shape")
        assert shape.kind == ClasslikeKind.INTERFACE.value
        assert shape.parents == ["\\Countable", "\\Lib\\Contract"]
        assert shape.interfaces == []

    def test_trait(self, indexed: IndexCoordinator) -> None:
        assert _classlike(indexed, "\\App\\Named").kind == ClasslikeKind.TRAIT.value

    def test_class_constant(self, indexed: IndexCoordinator) -> None:
        user = _classlike(indexed, "\\App\\User")
        assert user.id is not None
        constants = indexed.storage.get_class_constants(user.id)
        assert [c.name for c in constants] == ["ROLE"]
        assert [t.fqcn for t in constants[0].types] == ["string"]
        assert constants[0].fqsen is None

    def test_properties(self, indexed: IndexCoordinator) -> None:
        props = _properties(indexed, "\\App\\User")

        assert props["ids"].visibility == "protected"
        assert [t.fqcn for t in props["ids"].types] == ["int[]"]
        assert props["ids"].default_value == "[]"

        assert props["instance"].is_static
        assert props["instance"].visibility == "private"
        assert [t.fqcn for t in props["instance"].types] == ["\\App\\User", "null"]

    def test_promoted_constructor_parameters(self, indexed: IndexCoordinator) -> None:
        props = _properties(indexed, "\\App\\User")
        assert props["name"].visibility == "private"
        assert props["name"].is_readonly
        assert [t.fqcn for t in props["name"].types] == ["string"]
        assert props["age"].visibility == "protected"
        assert props["age"].default_value == "0"

    def test_methods(self, indexed: IndexCoordinator) -> None:
        methods = _methods(indexed, "\\App\\User")
        assert methods["__construct"].return_types == []
        assert [t.fqcn for t in methods["fluent"].return_types] == ["static"]
        assert methods["run"].is_abstract
        assert methods["run"].visibility == "protected"
        assert [t.fqcn for t in methods["run"].return_types] == ["void"]

    def test_magic_members(self, indexed: IndexCoordinator) -> None:
        props = _properties(indexed, "\\App\\User")
        assert props["email"].is_magic
        assert [t.fqcn for t in props["email"].types] == ["string"]

        make = _methods(indexed, "\\App\\User")["make"]
        assert make.is_magic
        assert make.is_static
        assert [t.fqcn for t in make.return_types] == ["\\App\\User"]
        assert make.id is not None
        (param,) = indexed.storage.get_parameters(make.id)
        assert param.name == "name"
        assert [t.fqcn for t in param.types] == ["string", "null"]

    def test_interface_methods_are_abstract(self, coordinator: IndexCoordinator) -> None:
        coordinator.index_file("/src/I.php", "<?php\ninterface I { public function run(); }\n")
        assert _methods(coordinator, "\\I")["run"].is_abstract


class TestTraitRules:
    """Tests for trait use clauses."""

    def test_insteadof_and_alias(self, coordinator: IndexCoordinator) -> None:
        coordinator.index_file(
            "/src/C.php",
            """<?php
namespace App;

class C
{
    use T1, T2 {
        T1::hello insteadof T2;
        T2::hello as protected hi;
        world as private;
    }
}
""",
        )
        row = _classlike(coordinator, "\\App\\C")
        assert row.traits == ["\\App\\T1", "\\App\\T2"]
        assert row.trait_precedences == [
            {"trait": "\\App\\T1", "method": "hello", "insteadof": ["\\App\\T2"]}
        ]
        assert row.trait_aliases == [
            {"trait": "\\App\\T2", "method": "hello", "alias": "hi", "visibility": "protected"},
            {"trait": None, "method": "world", "alias": None, "visibility": "private"},
        ]
