import logging

import pytest

from studygen.utils.logger import _inject_request_context, set_request_context


def _record():
    return logging.LogRecord('study_service', logging.INFO, __file__, 1, 'event', None, None)


@pytest.mark.unit
def test_request_context_is_injected():
    set_request_context('ctx-id', user_id='u1')
    record = _record()
    _inject_request_context(record)
    assert record.request_id == 'ctx-id'
    assert record.user_id == 'u1'


@pytest.mark.unit
def test_explicit_request_id_wins():
    set_request_context('ctx-id')
    record = _record()
    record.request_id = 'explicit'
    _inject_request_context(record)
    assert record.request_id == 'explicit'
