"""
Configuration objects, buffer sizes and the printed/queried diagnostics.
"""

import io
from pathlib import Path

import pytest

from aad_helpers.helpers import (
    ADHelperScalarFunction,
    HelperConfig,
    NumberTypes,
    RecordingStateError,
    TapeBufferSizes,
    UnknownTapeError,
)
from aad_helpers.helpers.config import DEFAULT_BUFFER_SIZE


def record_product(helper, tape_index=1):
    helper.start_recording(tape_index)
    helper.set_independent_variables([2.0, 3.0])
    x = helper.get_sensitive_variables()
    helper.register_dependent_variable(0, x[0] * x[1] + x[0])
    helper.stop_recording()


class TestHelperConfig:
    @pytest.mark.parametrize("text,expected", [
        ("taped", NumberTypes.TAPED),
        ("TAPELESS", NumberTypes.TAPELESS),
        (" tapeless ", NumberTypes.TAPELESS),
        (NumberTypes.TAPED, NumberTypes.TAPED),
    ])
    def test_parse_number_type(self, text, expected):
        assert HelperConfig.parse_number_type(text) is expected

    def test_unknown_number_type(self):
        with pytest.raises(ValueError):
            HelperConfig.parse_number_type("forward")
        with pytest.raises(ValueError):
            ADHelperScalarFunction(1, number_type="forward")

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("AAD_HELPERS_TAPE_DIR", raising=False)
        config = HelperConfig()
        assert config.number_type is NumberTypes.TAPED
        assert config.tape_directory == Path("tapes")
        assert config.buffer_sizes.as_tuple() == (DEFAULT_BUFFER_SIZE,) * 4

    def test_number_type_argument_overrides_config(self):
        config = HelperConfig(number_type="taped")
        helper = ADHelperScalarFunction(1, number_type="tapeless", config=config)
        assert helper.number_type is NumberTypes.TAPELESS
        assert config.number_type is NumberTypes.TAPED

    @pytest.mark.parametrize("index,valid", [
        (1, True), (65534, True), (0, False), (65535, False), (-3, False),
        (2.0, False), (False, False),
    ])
    def test_is_valid_tape_index(self, index, valid):
        assert HelperConfig.is_valid_tape_index(index) is valid


class TestBufferSizes:
    def test_non_positive_rejected(self):
        with pytest.raises(ValueError):
            TapeBufferSizes(obufsize=0)

    def test_sizes_stored_on_tape(self):
        helper = ADHelperScalarFunction(2)
        helper.set_tape_buffer_sizes(1024, 2048, 4096, 8192)
        record_product(helper)
        assert helper.tape_stats(1)["buffer_sizes"] == (1024, 2048, 4096, 8192)

    def test_default_sizes_not_forced(self):
        helper = ADHelperScalarFunction(2)
        record_product(helper)
        assert helper.tape_stats(1)["buffer_sizes"] is None

    def test_not_allowed_while_recording(self):
        helper = ADHelperScalarFunction(2)
        helper.start_recording(1)
        with pytest.raises(RecordingStateError):
            helper.set_tape_buffer_sizes()

    def test_tapeless_warns(self):
        helper = ADHelperScalarFunction(2, number_type="tapeless")
        with pytest.warns(UserWarning):
            helper.set_tape_buffer_sizes(1024, 1024, 1024, 1024)


class TestDiagnostics:
    def test_print_status(self, number_type):
        helper = ADHelperScalarFunction(2, number_type=number_type)
        record_product(helper)
        out = io.StringIO()
        helper.print(out)
        text = out.getvalue()
        assert f"number type: {number_type}" in text
        assert "state: ready" in text
        assert "marked independent variables: 11" in text
        assert "registered dependent variables: 1" in text
        assert "independent variable values: 2 3" in text

    def test_print_values(self):
        helper = ADHelperScalarFunction(3)
        helper.set_independent_variables([0.5, -1.0, 2.25])
        out = io.StringIO()
        helper.print_values(out)
        assert out.getvalue() == "independent variable values: 0.5 -1 2.25\n"

    def test_tape_stats(self):
        helper = ADHelperScalarFunction(2)
        record_product(helper, tape_index=5)
        stats = helper.tape_stats(5)
        assert stats["tape_index"] == 5
        assert stats["n_independent_variables"] == 2
        assert stats["n_dependent_variables"] == 1
        assert stats["nodes"] == 2
        assert stats["operations"] == {"mul": 1, "add": 1}

    def test_print_tape_stats(self):
        helper = ADHelperScalarFunction(2)
        helper.set_tape_buffer_sizes(1024, 1024, 1024, 1024)
        record_product(helper, tape_index=5)
        out = io.StringIO()
        helper.print_tape_stats(5, out)
        text = out.getvalue()
        assert "Tape 5: 2 independent, 1 dependent variables" in text
        assert "obufsize=1024" in text
        assert "COMPUTATION GRAPH SUMMARY" in text

    def test_tape_stats_unknown_tape(self):
        helper = ADHelperScalarFunction(2)
        with pytest.raises(UnknownTapeError):
            helper.tape_stats(3)

    def test_tapeless_has_no_tape_stats(self):
        helper = ADHelperScalarFunction(2, number_type="tapeless")
        record_product(helper)
        assert helper.tape_stats(1) == {}
        out = io.StringIO()
        helper.print_tape_stats(1, out)
        assert "do not record tapes" in out.getvalue()

    def test_repr(self):
        helper = ADHelperScalarFunction(2, number_type="tapeless")
        assert repr(helper) == ("ADHelperScalarFunction(n_independent=2, n_dependent=1, "
                                "number_type=tapeless, state=idle)")
