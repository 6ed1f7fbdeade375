"""Tests for PropertyComparer — ordering by a nested path."""

import datetime
import enum

import pytest

from nestfx import NotSortable, PropertyComparer, SortDirection, can_compare, resolve
from nestfx.comparer import Ordering, canonical_string, ordering_for

from model import AustralianState, City, Crate, Opaque, Person, make_person


class TestOrderingFor:
    def test_natural(self):
        assert ordering_for(int) is Ordering.NATURAL
        assert ordering_for(str) is Ordering.NATURAL
        assert ordering_for(datetime.date) is Ordering.NATURAL

    def test_enum_orders_by_value(self):
        assert ordering_for(AustralianState) is Ordering.ENUM_VALUE

    def test_enum_with_mixed_values_uses_canonical_string(self):
        class Grade(enum.Enum):
            PASS = 1
            FAIL = "f"

        assert ordering_for(Grade) is Ordering.CANONICAL_STRING

    def test_printable_class_uses_canonical_string(self):
        # dataclasses generate __repr__
        assert ordering_for(City) is Ordering.CANONICAL_STRING

    def test_unorderable(self):
        assert ordering_for(Opaque) is None
        assert ordering_for(object) is None
        assert not can_compare(Opaque)

    def test_canonical_string_casefolds(self):
        assert canonical_string(AustralianState.NSW) == "nsw"
        assert canonical_string("Fred") == "fred"


class TestCompare:
    def test_natural_order(self):
        comparer = PropertyComparer(resolve(Person, "ID"))
        assert comparer.compare(Person(1), Person(2)) == -1
        assert comparer.compare(Person(2), Person(1)) == 1
        assert comparer.compare(Person(2), Person(2)) == 0

    def test_descending_flips(self):
        comparer = PropertyComparer(resolve(Person, "ID"), SortDirection.DESCENDING)
        assert comparer(Person(1), Person(2)) == 1

    def test_nested_path(self):
        comparer = PropertyComparer(resolve(Person, "Address.City.Name"))
        perth = make_person(city="Perth")
        adelaide = make_person(city="Adelaide")
        assert comparer.compare(adelaide, perth) == -1

    def test_none_sorts_first(self):
        comparer = PropertyComparer(resolve(Person, "Name"))
        assert comparer.compare(Person(), Person(Name="Abigale")) == -1
        assert comparer.compare(Person(), Person()) == 0

    def test_absent_link_sorts_first(self):
        comparer = PropertyComparer(resolve(Person, "Address.City.Name"))
        assert comparer.compare(Person(), make_person(city="Albany")) == -1

    def test_enum_by_declared_value(self):
        comparer = PropertyComparer(resolve(Person, "Address.City.State"))
        wa = make_person(state=AustralianState.WA)
        sa = make_person(state=AustralianState.SA)
        # by member name SA would come first
        assert comparer.compare(wa, sa) == -1
        assert comparer.compare(make_person(state=None), wa) == -1

    def test_canonical_string_case_insensitive(self):
        comparer = PropertyComparer(resolve(Person, "Address.City"))
        perth = make_person(city="perth")
        adelaide = make_person(city="Adelaide")
        assert comparer.compare(adelaide, perth) == -1

    def test_unsortable_path_rejected(self):
        with pytest.raises(NotSortable):
            PropertyComparer(resolve(Crate, "Contents"))

    def test_not_sortable_is_type_error(self):
        with pytest.raises(TypeError):
            PropertyComparer(resolve(Crate, "Contents"))


class TestSortKey:
    def test_sorts_a_plain_list(self):
        people = [Person(Name="Fred"), Person(), Person(Name="bill"), Person(Name="Abigale")]
        people.sort(key=PropertyComparer(resolve(Person, "Name")).sort_key)
        assert [p.Name for p in people] == [None, "Abigale", "Fred", "bill"]

    def test_descending_puts_absent_last(self):
        people = [Person(Name="Fred"), Person(), Person(Name="Bill")]
        people.sort(key=PropertyComparer(resolve(Person, "Name"), SortDirection.DESCENDING).sort_key)
        assert [p.Name for p in people] == ["Fred", "Bill", None]

    def test_stable(self):
        first, second, third = Person(1, "Ann"), Person(2, "Ann"), Person(3, "Ann")
        people = [first, second, third]
        key = PropertyComparer(resolve(Person, "Name")).sort_key
        people.sort(key=key)
        people.sort(key=key)
        assert people == [first, second, third]
