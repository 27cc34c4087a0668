"""
Tests for supply_config: YAML loading, section validation, checksums, and
the bridges that turn configuration into kernel objects.
"""

import json
import logging
from decimal import ROUND_HALF_EVEN, Decimal
from io import StringIO

import pytest
import yaml

from supply_config import get_active_config
from supply_config.bridges import (
    build_money_engine,
    build_sequence_prefixes,
    configure_logging_from_config,
    gst_blending_from_config,
)
from supply_config.loader import CONFIG_FILENAME, compute_checksum, load_config, parse_config
from supply_config.schema import DEFAULT_PREFIXES, MoneyConfig, SequenceConfig
from supply_kernel.domain.money import GstBlending
from supply_kernel.logging_config import configure_logging, get_logger, reset_logging
from supply_modules.orchestrator import SupplyOrchestrator
from supply_modules.srn import SRNLineRequest


def _write(tmp_path, data):
    (tmp_path / CONFIG_FILENAME).write_text(yaml.safe_dump(data))
    return tmp_path


class TestDefaultSet:

    def test_loads(self):
        config = get_active_config()
        assert config.config_id == "supply-default"
        assert config.money.decimal_places == 2
        assert config.invoice.gst_blending == "weighted"
        assert dict(config.sequence.prefixes) == dict(DEFAULT_PREFIXES)
        assert len(config.checksum) == 64

    def test_load_is_logged(self, captured_logs):
        config = get_active_config()
        [record] = [r for r in captured_logs() if r["event"] == "supply_config_loaded"]
        assert record["checksum"] == config.checksum


class TestParse:

    def test_minimal_document_takes_defaults(self):
        config = parse_config({"config_id": "tiny"})
        assert config.version == 1
        assert config.sequence.pad_width == 6
        assert config.database.url == "sqlite://"

    def test_partial_prefixes_merge_with_defaults(self):
        config = parse_config({"config_id": "c", "sequence": {"prefixes": {"srn": "REQ"}}})
        assert config.sequence.prefix_for("srn") == "REQ"
        assert config.sequence.prefix_for("invoice") == "INV"

    def test_checksum_tracks_content(self):
        a = parse_config({"config_id": "c", "version": 1})
        b = parse_config({"config_id": "c", "version": 2})
        assert a.checksum != b.checksum
        assert a.checksum == compute_checksum({"config_id": "c", "version": 1})

    @pytest.mark.parametrize(
        "document",
        [
            {},
            {"config_id": ""},
            {"config_id": "c", "version": 0},
            {"config_id": "c", "reports": {}},
            {"config_id": "c", "money": {"decimal_places": -1}},
            {"config_id": "c", "money": {"rounding": "ROUND_SOMETIMES"}},
            {"config_id": "c", "money": {"currency": "INR"}},
            {"config_id": "c", "money": []},
            {"config_id": "c", "sequence": {"pad_width": 0}},
            {"config_id": "c", "sequence": {"prefixes": {"quote": "Q"}}},
            {"config_id": "c", "sequence": {"prefixes": {"srn": "S-R"}}},
            {"config_id": "c", "sequence": {"prefixes": {"srn": "INV"}}},
            {"config_id": "c", "invoice": {"gst_blending": "max"}},
            {"config_id": "c", "logging": {"level": "LOUD"}},
        ],
    )
    def test_invalid(self, document):
        with pytest.raises(ValueError):
            parse_config(document)


class TestLoadFromDirectory:

    def test_round_trip_through_yaml(self, tmp_path):
        _write(tmp_path, {
            "config_id": "custom",
            "version": 3,
            "money": {"rounding": ROUND_HALF_EVEN},
            "invoice": {"gst_blending": "simple_average"},
        })
        config = load_config(tmp_path)
        assert config.version == 3
        assert config.money.rounding == ROUND_HALF_EVEN
        assert gst_blending_from_config(config) == GstBlending.SIMPLE_AVERAGE

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            get_active_config(tmp_path)

    def test_non_mapping_document(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("- just\n- a list\n")
        with pytest.raises(ValueError):
            load_config(tmp_path)


class TestSections:

    def test_money_rejects_bool_places(self):
        with pytest.raises(ValueError):
            MoneyConfig(decimal_places=True)

    def test_sequence_defaults(self):
        assert SequenceConfig().prefix_for("return") == "RET"


class TestBridges:

    def test_money_engine_uses_rounding(self):
        config = parse_config({"config_id": "c", "money": {"rounding": ROUND_HALF_EVEN}})
        money = build_money_engine(config)
        assert money.round(Decimal("2.345")) == Decimal("2.34")
        assert build_money_engine(parse_config({"config_id": "c"})).round(Decimal("2.345")) == Decimal("2.35")

    def test_prefix_map(self):
        config = parse_config({"config_id": "c", "sequence": {"prefixes": {"dispatch": "DSP"}}})
        prefixes = build_sequence_prefixes(config)
        assert prefixes["DO"] == "DSP"
        assert prefixes["SRN"] == "SRN"

    def test_logging_level(self):
        config = parse_config({"config_id": "c", "logging": {"level": "WARNING"}})
        out = StringIO()
        reset_logging()
        try:
            assert configure_logging_from_config(config, handler=logging.StreamHandler(out))
            get_logger("config").info("dropped")
            get_logger("config").warning("kept")
        finally:
            reset_logging()
            configure_logging(level=logging.DEBUG)
        assert [json.loads(line)["event"] for line in out.getvalue().splitlines()] == ["kept"]

    def test_configured_prefix_and_width_reach_documents(self, session, deterministic_clock, retailer, material):
        config = parse_config({
            "config_id": "c",
            "sequence": {"pad_width": 4, "prefixes": {"srn": "REQ"}},
        })
        supply = SupplyOrchestrator(session, config, deterministic_clock)
        srn = supply.srn.create(retailer, [SRNLineRequest(material.material_id, 1)])
        assert srn.srn_number == "REQ-20240315-0001"
