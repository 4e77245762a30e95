import httpx
import pytest

from careflow.core import config
from careflow.services.telephony import TelephonyError, normalize_phone_number, trigger_call


@pytest.fixture
def twilio_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'TWILIO_ACCOUNT_SID', 'AC123')
    monkeypatch.setattr(config, 'TWILIO_AUTH_TOKEN', 'secret')
    monkeypatch.setattr(config, 'TWILIO_PHONE_NUMBER', '+15550000000')


@pytest.mark.parametrize(
    ('raw', 'expected'),
    [
        ('9876543210', '+919876543210'),
        ('98765-43210', '+919876543210'),
        ('+14155550123', '+14155550123'),
        ('', None),
        (None, None),
        ('n/a', None),
    ],
)
def test_normalize_phone_number(raw, expected) -> None:
    assert normalize_phone_number(raw, default_country_code='+91') == expected


def test_trigger_call_posts_to_twilio(twilio_config) -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen['url'] = str(request.url)
        seen['body'] = request.content.decode()
        return httpx.Response(201, json={'sid': 'CA42'})

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        call_sid = trigger_call('+14155550123', 'https://example.com/reminder.xml', client=client)

    assert call_sid == 'CA42'
    assert seen['url'].endswith('/Accounts/AC123/Calls.json')
    assert 'To=%2B14155550123' in seen['body']
    assert 'Url=https%3A%2F%2Fexample.com%2Freminder.xml' in seen['body']


def test_trigger_call_raises_on_rejection(twilio_config) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(400, json={'message': 'Invalid To number'}))

    with httpx.Client(transport=transport) as client:
        with pytest.raises(TelephonyError, match='Invalid To number'):
            trigger_call('+1', 'https://example.com/reminder.xml', client=client)


def test_trigger_call_wraps_transport_errors(twilio_config) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError('connection refused', request=request)

    with httpx.Client(transport=httpx.MockTransport(handler)) as client:
        with pytest.raises(TelephonyError, match='connection refused'):
            trigger_call('+14155550123', 'https://example.com/reminder.xml', client=client)


def test_trigger_call_requires_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'TWILIO_ACCOUNT_SID', '')

    with pytest.raises(TelephonyError, match='not configured'):
        trigger_call('+14155550123', 'https://example.com/reminder.xml')


def test_trigger_call_rejects_unreadable_success_body(twilio_config) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(201, text='<Response>queued</Response>'))

    with httpx.Client(transport=transport) as client:
        with pytest.raises(TelephonyError, match='unreadable response'):
            trigger_call('+14155550123', 'https://example.com/reminder.xml', client=client)
