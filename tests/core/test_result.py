"""
Tests for the Result[P] envelope and Timer.
"""

from dataclasses import FrozenInstanceError, dataclass

import pytest

from lmdesign.core.result import Result
from lmdesign.core.timing import Timer


@dataclass(frozen=True)
class FakeParams:
    """Minimal payload for testing."""
    value: float


class TestResult:
    """Frozen Result envelope."""

    def test_fields(self):
        r = Result(params=FakeParams(1.5), info={'method': 'qr'}, timing=None, backend_name='cpu')
        assert r.params.value == 1.5
        assert r.info['method'] == 'qr'
        assert r.timing is None
        assert r.backend_name == 'cpu'
        assert r.warnings == ()

    def test_frozen(self):
        r = Result(params=FakeParams(1.0), info={}, timing=None, backend_name='cpu')
        with pytest.raises(FrozenInstanceError):
            r.backend_name = 'other'

    def test_has_warning(self):
        r = Result(
            params=FakeParams(1.0), info={}, timing=None, backend_name='cpu',
            warnings=("No residual degrees of freedom (n=2, p=2)",),
        )
        assert r.has_warning("residual degrees")
        assert not r.has_warning("singular")


class TestTimer:
    """Section timing."""

    def test_sections_accumulate(self):
        timer = Timer()
        timer.start()
        with timer.section('a'):
            pass
        with timer.section('a'):
            pass
        timer.stop()
        result = timer.result()
        assert set(result) == {'total_seconds', 'a'}
        assert result['total_seconds'] >= 0.0

    def test_result_before_stop_raises(self):
        timer = Timer()
        timer.start()
        with pytest.raises(RuntimeError):
            timer.result()

    def test_stop_before_start_raises(self):
        with pytest.raises(RuntimeError):
            Timer().stop()
