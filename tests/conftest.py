# tests/conftest.py

import os

# Config reads the environment at import time
os.environ['OWNER_DISCORD_ID'] = '1001'
os.environ['ADMIN_DISCORD_IDS'] = '1002'
os.environ['LOG_DIR'] = ''
os.environ['DEBUG'] = 'false'
os.environ['GAME_DATA_MARKER'] = ':game-data='
os.environ['GAME_DATA_TERMINATOR'] = ''

import pytest


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / 'stats_test.db'
