import pytest

from BookingDirectory import BookingDirectory
from permissions import Role
from persistence import InMemoryPersistence


@pytest.fixture()
def persistence():
    return InMemoryPersistence()


@pytest.fixture()
def directory(persistence):
    return BookingDirectory(persistence)


@pytest.fixture()
def admin(directory):
    return directory.authenticate("admin", "admin")


@pytest.fixture()
def room(directory, admin):
    return directory.create_room(admin, "Alpha", 8, "Second floor")


@pytest.fixture()
def alice(directory, admin):
    return directory.create_account(admin, "alice", "pw-alice", Role.USER)


@pytest.fixture()
def bob(directory, admin):
    return directory.create_account(admin, "bob", "pw-bob", Role.USER)


@pytest.fixture()
def scheduler(directory, admin):
    return directory.create_account(admin, "sam", "pw-sam", Role.SCHEDULER)


@pytest.fixture()
def guest(directory, admin):
    return directory.create_account(admin, "gus", "pw-gus", Role.GUEST)
