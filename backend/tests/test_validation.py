from unittest import mock

import pytest
import requests

from artshare.errors import ValidationError
from artshare.validation import (
    is_valid_url,
    link_is_reachable,
    parse_price,
    reject_unknown_fields,
    require_fields,
    validate_category,
    validate_email,
)


@pytest.mark.parametrize('value, expected', [
    ('10', 10.0),
    (10, 10.0),
    (0.01, 0.01),
    (' 3.5 ', 3.5),
    ('-5', None),
    (0, None),
    ('nan', None),
    ('inf', None),
    ('ten', None),
    (None, None),
    (True, None),
    ([], None),
])
def test_parse_price(value, expected):
    assert parse_price(value) == expected


def test_category_must_be_known():
    assert validate_category('Painting') == 'Painting'
    with pytest.raises(ValidationError):
        validate_category('painting')


@pytest.mark.parametrize('url, expected', [
    ('https://ok.test/1.png', True),
    ('http://ok.test', True),
    ('ftp://ok.test/1.png', False),
    ('https://', False),
    ('ok.test/1.png', False),
    (None, False),
])
def test_is_valid_url(url, expected):
    assert is_valid_url(url) is expected


def test_link_is_reachable_closes_response():
    response = mock.MagicMock(status_code=200)
    with mock.patch('artshare.validation.requests.get', return_value=response) as mock_get:
        assert link_is_reachable('https://ok.test/1.png', timeout=3)
    mock_get.assert_called_once_with('https://ok.test/1.png', stream=True, timeout=3,
                                     allow_redirects=True)
    response.close.assert_called_once()


@pytest.mark.parametrize('status_code', [301, 403, 404, 500])
def test_link_is_reachable_requires_200(status_code):
    with mock.patch('artshare.validation.requests.get',
                    return_value=mock.MagicMock(status_code=status_code)):
        assert not link_is_reachable('https://ok.test/1.png', timeout=3)


def test_link_is_reachable_on_timeout():
    with mock.patch('artshare.validation.requests.get', side_effect=requests.Timeout()):
        assert not link_is_reachable('https://slow.test/1.png', timeout=0.1)


def test_require_fields_names_every_missing_field():
    with pytest.raises(ValidationError) as err:
        require_fields({'a': 'x', 'b': '  ', 'c': None}, ('a', 'b', 'c', 'd'))
    assert set(err.value.fields) == {'b', 'c', 'd'}


def test_reject_unknown_fields():
    reject_unknown_fields({'name': 'x'}, {'name': 'name'})
    with pytest.raises(ValidationError) as err:
        reject_unknown_fields({'name': 'x', 'email': 'y'}, {'name': 'name'})
    assert list(err.value.fields) == ['email']


def test_validate_email_normalizes():
    assert validate_email('  Ada@Example.COM ') == 'ada@example.com'
    with pytest.raises(ValidationError):
        validate_email('ada@')
