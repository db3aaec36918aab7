import pytest

from modernsocket.core.errors import (
    ConnectionClosedError,
    ModernSocketError,
    PostOpenFailure,
    PreOpenFailure,
)
from modernsocket.core.models.cause import Cause, CloseCode, validate_close


@pytest.mark.ut
def test_cause_is_immutable_value():
    cause = Cause(code=1000, reason="bye")

    assert cause == Cause(1000, "bye")
    assert cause.to_dict() == {"code": 1000, "reason": "bye"}

    with pytest.raises(AttributeError):
        cause.code = 1001  # type: ignore[misc]


@pytest.mark.ut
@pytest.mark.parametrize("code", [None, 1000, 3000, 4000, 4999])
def test_validate_close_accepts_application_codes(code):
    validate_close(code, "ok")


@pytest.mark.ut
@pytest.mark.parametrize("code", [999, 1001, 1006, 2999, 5000])
def test_validate_close_rejects_reserved_codes(code):
    with pytest.raises(ValueError):
        validate_close(code, None)


@pytest.mark.ut
def test_validate_close_limits_reason_bytes():
    validate_close(CloseCode.NORMAL, "x" * 123)

    with pytest.raises(ValueError):
        validate_close(CloseCode.NORMAL, "x" * 124)

    # 62 two-byte characters exceed the limit although len() is only 62.
    with pytest.raises(ValueError):
        validate_close(CloseCode.NORMAL, "é" * 62)


@pytest.mark.ut
def test_closed_errors_carry_cause():
    error = PostOpenFailure(1006, "network down")

    assert isinstance(error, ConnectionClosedError)
    assert isinstance(error, ModernSocketError)
    assert error.code == 1006
    assert error.reason == "network down"
    assert error.cause == Cause(1006, "network down")
    assert str(error) == "Closed with code 1006"


@pytest.mark.ut
def test_pre_and_post_open_failures_are_distinct():
    assert not issubclass(PreOpenFailure, PostOpenFailure)
    assert not issubclass(PostOpenFailure, PreOpenFailure)
