"""Tests for the engine tracer and input fingerprints."""

from decimal import Decimal

from fee_engines.tracer import compute_input_fingerprint, fingerprint, traced_engine
from fee_kernel.domain.disciplines import Phase
from fee_kernel.domain.proposal import Structure


class TestFingerprints:

    def test_deterministic(self):
        args = {"discipline": "Mechanical", "phase": Phase.DESIGN}
        assert compute_input_fingerprint(("discipline", "phase"), args) == \
            compute_input_fingerprint(("discipline", "phase"), dict(args))

    def test_sixteen_hex_chars(self):
        fp = compute_input_fingerprint(("x",), {"x": Decimal("1.5")})
        assert len(fp) == 16
        int(fp, 16)

    def test_missing_field_recorded_as_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(("x",), {"x": None})

    def test_content_not_identity(self):
        a = Structure(id="a", name="A", design_percentage="70")
        b = Structure(id="a", name="A", design_percentage="70")
        assert fingerprint(a) == fingerprint(b)
        assert fingerprint(a) != fingerprint(Structure(id="a", name="A", design_percentage="71"))

    def test_mapping_key_order_ignored(self):
        assert fingerprint({"a": 1, "b": 2}) == fingerprint({"b": 2, "a": 1})


class TestTracedEngine:

    def test_result_unchanged_and_trace_emitted(self, captured_logs):
        @traced_engine("sample", "2.1", fingerprint_fields=("amount",))
        def double(amount):
            return amount * 2

        assert double(Decimal("4")) == Decimal("8")

        traces = [r for r in captured_logs() if r["message"] == "FEE_ENGINE_TRACE"]
        assert traces[-1]["engine_name"] == "sample"
        assert traces[-1]["engine_version"] == "2.1"
        assert len(traces[-1]["input_fingerprint"]) == 16
        assert traces[-1]["duration_ms"] >= 0

    def test_keyword_arguments_fingerprinted(self, captured_logs):
        @traced_engine("sample", "1.0", fingerprint_fields=("amount",))
        def identity(amount):
            return amount

        identity(Decimal("3"))
        identity(amount=Decimal("3"))

        fps = [r["input_fingerprint"] for r in captured_logs() if r["message"] == "FEE_ENGINE_TRACE"]
        assert fps[0] == fps[1]
