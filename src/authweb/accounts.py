"""Local account stores used to materialise accepted users.

The remote verifier only vouches for the password. The uid, gid, home
directory and shell of an accepted user come from a *template* account
that already exists locally, looked up through an :class:`AccountStore`.

Two stores are provided:

- :class:`PasswdAccountStore` -- the system password database (POSIX only).
- :class:`StaticAccountStore` -- an in-memory mapping, for tests and hosts
  without a password database.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from authweb.models import AccountRecord


class AccountStore(ABC):
    """Abstract base class for local account lookups."""

    @abstractmethod
    def lookup(self, name: str) -> Optional[AccountRecord]:
        """Return the account called *name*, or ``None`` if it does not exist."""
        ...


class PasswdAccountStore(AccountStore):
    """Look accounts up in the system password database via :mod:`pwd`."""

    def lookup(self, name: str) -> Optional[AccountRecord]:
        import pwd

        try:
            entry = pwd.getpwnam(name)
        except KeyError:
            return None
        return AccountRecord(
            name=entry.pw_name,
            uid=entry.pw_uid,
            gid=entry.pw_gid,
            home=entry.pw_dir,
            shell=entry.pw_shell,
            gecos=entry.pw_gecos,
        )


class StaticAccountStore(AccountStore):
    """Serve account records from memory.

    Args:
        records: Accounts to serve, keyed by their ``name``.

    Example::

        store = StaticAccountStore([
            AccountRecord(name="ftp", uid=14, gid=50, home="/srv/ftp", shell="/sbin/nologin"),
        ])
    """

    def __init__(self, records: Iterable[AccountRecord] = ()) -> None:
        self._records = {record.name: record for record in records}

    def lookup(self, name: str) -> Optional[AccountRecord]:
        return self._records.get(name)


def default_account_store() -> AccountStore:
    """Return the account store for this platform.

    Uses the password database where :mod:`pwd` exists, otherwise an empty
    :class:`StaticAccountStore` (every lookup misses, so accepted users
    abstain instead of being materialised).
    """
    try:
        import pwd  # noqa: F401
    except ImportError:
        return StaticAccountStore()
    return PasswdAccountStore()
