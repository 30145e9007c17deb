import pytest

from cac.exceptions import (
    AutoCommitError,
    ConfigError,
    GitError,
    LLMError,
    ProviderHTTPError,
    PushError,
    ValidationError,
)


@pytest.mark.parametrize(
    "exc_type", [ConfigError, GitError, LLMError, PushError, ValidationError]
)
def test_errors_share_base(exc_type):
    with pytest.raises(AutoCommitError, match="boom"):
        raise exc_type("boom")


def test_provider_http_error_carries_status_and_body():
    err = ProviderHTTPError(429, "rate limited")
    assert isinstance(err, LLMError)
    assert err.status_code == 429
    assert err.body == "rate limited"
    assert str(err) == "HTTP 429: rate limited"
