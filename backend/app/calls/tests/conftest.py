from unittest import mock

import pytest


@pytest.fixture(autouse=True)
def rtc_token():
    with mock.patch(
        "app.calls.tokens.RtcTokenBuilder.buildTokenWithUid", return_value="rtc-token"
    ) as m:
        yield m
