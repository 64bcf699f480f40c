"""
Tests for identity normalization.

Every handle comparison in the pipeline goes through normalize(), so these
cover the equivalences the engines rely on plus totality on bad input.
"""
import pytest

from signalboard.core.identity import UNATTRIBUTABLE, is_attributable, normalize


class TestNormalize:
    def test_equivalent_forms(self):
        assert normalize("@Foo") == normalize("foo") == normalize(" foo ") == "foo"

    def test_strips_whitespace_around_at(self):
        assert normalize("  @CryptoWhale  ") == "cryptowhale"

    def test_repeated_at_prefix(self):
        assert normalize("@@foo") == "foo"

    @pytest.mark.parametrize("raw", ["@Foo", "@@ Bar", "  baz  ", "Q_U_X", "@", ""])
    def test_idempotent(self, raw):
        assert normalize(normalize(raw)) == normalize(raw)

    def test_inner_at_is_kept(self):
        assert normalize("a@b") == "a@b"

    @pytest.mark.parametrize("raw", [None, "", "   ", "@", 42, ["foo"]])
    def test_unattributable_input(self, raw):
        assert normalize(raw) == UNATTRIBUTABLE
        assert is_attributable(normalize(raw)) is False

    def test_attributable(self):
        assert is_attributable(normalize("@foo")) is True
