import os
import shutil
import numpy as np
import pytest

data_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "data")
output_path = os.path.join(data_path, "test_output")


@pytest.fixture(scope="session", autouse=True)
def cleanup(request):
    def remove_output():
        shutil.rmtree(output_path, ignore_errors=True)
    request.addfinalizer(remove_output)


@pytest.fixture
def rng():
    return np.random.default_rng(354)


def pytest_configure(config):
    os.makedirs(output_path, exist_ok=True)
