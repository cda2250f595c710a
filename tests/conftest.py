import io
import logging
import os

import pytest


logging.basicConfig(level=logging.DEBUG if 'DEBUG' in os.environ else logging.INFO)


class Unseekable(object):
    '''File-like object that can only be read or written in sequence, like a pipe.'''

    def __init__(self, data=b''):
        self.buffer = io.BytesIO(data)
        self.closed = False

    def read(self, size=-1):
        return self.buffer.read(size)

    def write(self, data):
        return self.buffer.write(data)

    def seekable(self):
        return False

    def getvalue(self):
        return self.buffer.getvalue()


@pytest.fixture
def unseekable():
    return Unseekable
