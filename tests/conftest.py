import socket

import pytest


def _has_protocol_db():
    try:
        socket.getprotobyname("tcp")
        return True
    except OSError:
        return False


def pytest_collection_modifyitems(config, items):
    """Skips tests marked requires_protocol_db when 'tcp' cannot be looked up."""
    if _has_protocol_db():
        return
    skip = pytest.mark.skip(reason="no 'tcp' entry in the protocol database")
    for item in items:
        if "requires_protocol_db" in item.keywords:
            item.add_marker(skip)
