import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--repeat",
        type=int,
        default=1,
        help="decode the same input multiple times in idempotence tests",
    )


@pytest.fixture(scope="session")
def repeat(request):
    return request.config.getoption("repeat")
