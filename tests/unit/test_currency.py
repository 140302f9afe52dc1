"""Unit tests for rupee/paise conversion."""

from decimal import Decimal

import pytest
from libs.common.currency import from_minor_units, to_minor_units


@pytest.mark.unit
def test_to_minor_units_rounds_instead_of_truncating():
    assert to_minor_units(19.999) == 2000


@pytest.mark.unit
def test_to_minor_units_whole_rupees():
    assert to_minor_units(10) == 1000
    assert to_minor_units(Decimal("440")) == 44000


@pytest.mark.unit
def test_to_minor_units_half_paisa_rounds_up():
    assert to_minor_units("0.005") == 1
    assert to_minor_units("12.345") == 1235


@pytest.mark.unit
def test_to_minor_units_avoids_float_artifacts():
    # 0.1 + 0.2 == 0.30000000000000004 as a float
    assert to_minor_units(0.1 + 0.2) == 30


@pytest.mark.unit
def test_from_minor_units():
    assert from_minor_units(44000) == Decimal("440.00")
    assert from_minor_units(1) == Decimal("0.01")
