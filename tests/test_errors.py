import pytest

from uvrpc.errors import (
    InvalidParamError,
    NoMemoryError,
    RpcError,
    RpcTimeoutError,
    ServiceNotFoundError,
    Status,
    error_for_status,
)


@pytest.mark.parametrize(
    "code, name",
    [
        (-1, "ERROR"),
        (-2, "INVALID_PARAM"),
        (-3, "NO_MEMORY"),
        (-4, "SERVICE_NOT_FOUND"),
        (-5, "TIMEOUT"),
    ],
)
def test_status_codes_match_documented_values(code, name):
    err = error_for_status(code)
    assert err.status.name == name
    assert int(err.status) == code


@pytest.mark.parametrize(
    "status, cls",
    [
        (Status.ERROR, RpcError),
        (Status.INVALID_PARAM, InvalidParamError),
        (Status.NO_MEMORY, NoMemoryError),
        (Status.SERVICE_NOT_FOUND, ServiceNotFoundError),
        (Status.TIMEOUT, RpcTimeoutError),
    ],
)
def test_error_for_status_picks_matching_class(status, cls):
    err = error_for_status(status, "boom")
    assert type(err) is cls
    assert err.status == status
    assert str(err) == "boom"


def test_error_for_status_accepts_plain_int():
    err = error_for_status(int(Status.SERVICE_NOT_FOUND))
    assert isinstance(err, ServiceNotFoundError)
    assert "SERVICE_NOT_FOUND" in str(err)


def test_unknown_status_keeps_its_code():
    err = error_for_status(-42, "odd")
    assert type(err) is RpcError
    assert err.status == -42


def test_unknown_status_default_message_names_code():
    err = error_for_status(-42)
    assert "-42" in str(err)


def test_ok_is_not_an_error():
    with pytest.raises(ValueError):
        error_for_status(Status.OK)


@pytest.mark.parametrize(
    "status, builtin",
    [
        (Status.INVALID_PARAM, ValueError),
        (Status.TIMEOUT, TimeoutError),
        (Status.SERVICE_NOT_FOUND, LookupError),
    ],
)
def test_subclasses_fit_builtin_hierarchies(status, builtin):
    with pytest.raises(builtin) as caught:
        raise error_for_status(status, "caught")
    assert caught.value.status == status
    assert str(caught.value) == "caught"

    with pytest.raises(RpcError) as caught_rpc:
        raise error_for_status(status, "again")
    assert caught_rpc.value.status == status
    assert str(caught_rpc.value) == "again"