import pytest


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Keep every test's settings and scenarios under its own temp dir."""
    data_dir = tmp_path / 'data'
    monkeypatch.setenv('SPENDING_PLAN_DATA_DIR', str(data_dir))
    return data_dir
