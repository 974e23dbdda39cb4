"""Unit tests for the capability registry."""

from __future__ import annotations

import pytest

from lakeside.devices.exceptions import UnknownModelError
from lakeside.devices.models import (
    CapabilitySet,
    DeviceCategory,
    DeviceModel,
    PacketFamily,
    capabilities_of,
    category_of,
    is_color_bulb,
    is_plug_or_switch,
    is_white_bulb,
    packet_family_of,
    parse_model,
)

PLUGS = ("T1201", "T1202", "T1203")
WHITE_BULBS = ("T1011", "T1012")


class TestCategoryOf:
    """Tests for category_of()."""

    @pytest.mark.parametrize("model", PLUGS)
    def test_plugs(self, model: str):
        assert category_of(model) is DeviceCategory.POWER_PLUG

    def test_switch(self):
        assert category_of("T1211") is DeviceCategory.SWITCH

    @pytest.mark.parametrize("model", [*WHITE_BULBS, "T1013"])
    def test_bulbs(self, model: str):
        assert category_of(model) is DeviceCategory.LIGHT_BULB

    def test_total_and_stable_over_known_models(self):
        """Every known model maps to one category, the same one on every call."""
        for model in DeviceModel:
            first = category_of(model)
            assert category_of(model) is first
            assert category_of(model.value) is first

    def test_unknown_model_raises(self):
        with pytest.raises(UnknownModelError) as exc_info:
            _ = category_of("T9999")

        assert exc_info.value.model == "T9999"
        assert "T9999" in str(exc_info.value)

    def test_unknown_model_is_value_error(self):
        with pytest.raises(ValueError):
            _ = parse_model("not-a-model")


class TestCapabilitiesOf:
    """Tests for capabilities_of()."""

    @pytest.mark.parametrize("model", [*PLUGS, "T1211"])
    def test_plugs_and_switches_have_no_capabilities(self, model: str):
        assert capabilities_of(model) == CapabilitySet()

    @pytest.mark.parametrize("model", WHITE_BULBS)
    def test_white_bulbs(self, model: str):
        caps = capabilities_of(model)

        assert caps.supports_brightness is True
        assert caps.supports_temperature is True
        assert caps.supports_colors is False

    def test_color_bulb_supports_everything(self):
        caps = capabilities_of(DeviceModel.T1013)

        assert caps == CapabilitySet(supports_brightness=True, supports_temperature=True, supports_colors=True)

    def test_stable(self):
        for model in DeviceModel:
            assert capabilities_of(model) == capabilities_of(model)

    def test_capability_set_is_immutable(self):
        caps = capabilities_of("T1013")

        with pytest.raises(AttributeError):
            caps.supports_colors = False  # type: ignore[misc]


class TestSchemaPredicates:
    """Tests for the schema-selection predicates and packet families."""

    def test_predicates_partition_known_models(self):
        for model in DeviceModel:
            flags = [is_white_bulb(model), is_color_bulb(model), is_plug_or_switch(model)]
            assert flags.count(True) == 1, model

    def test_predicates_accept_plain_strings(self):
        assert is_white_bulb("T1012") is True
        assert is_color_bulb("T1013") is True
        assert is_plug_or_switch("T1211") is True
        assert is_plug_or_switch("T1013") is False

    @pytest.mark.parametrize(
        ("model", "family"),
        [
            ("T1201", PacketFamily.PLUG_SWITCH),
            ("T1211", PacketFamily.PLUG_SWITCH),
            ("T1011", PacketFamily.WHITE_BULB),
            ("T1012", PacketFamily.WHITE_BULB),
            ("T1013", PacketFamily.COLOR_BULB),
        ],
    )
    def test_packet_family(self, model: str, family: PacketFamily):
        assert packet_family_of(model) is family
