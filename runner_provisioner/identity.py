"""The non-privileged user the runner executes as.

Creating the user and handing it the installed tree happen at build time,
as root. Dropping to it happens once, at launch, and cannot be undone for
the rest of the process lifetime.
"""

from __future__ import annotations

import logging
import os
import pwd
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, MutableMapping

from .commands import run_command
from .errors import IdentityError, PrivilegeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    name: str
    uid: int
    gid: int
    home: Path

    @classmethod
    def from_passwd(cls, entry: pwd.struct_passwd) -> "Identity":
        return cls(name=entry.pw_name, uid=entry.pw_uid, gid=entry.pw_gid, home=Path(entry.pw_dir))


def lookup_identity(name: str) -> Identity:
    try:
        entry = pwd.getpwnam(name)
    except KeyError as e:
        raise IdentityError(f"User {name!r} does not exist.") from e
    identity = Identity.from_passwd(entry)
    if identity.uid == 0:
        raise IdentityError(f"User {name!r} has uid 0; refusing to treat it as non-privileged.")
    return identity


def ensure_user(name: str, home: Path) -> Identity:
    """Create ``name`` with a home directory unless it already exists."""
    try:
        pwd.getpwnam(name)
    except KeyError:
        logger.info(f"Creating user {name} with home {home}")
        run_command(["useradd", "-m", "-d", str(home), name], error=IdentityError)
    else:
        logger.info(f"User {name} already exists")
    return lookup_identity(name)


def _walk(root: Path) -> Iterator[Path]:
    yield root
    for dirpath, dirnames, filenames in os.walk(root):
        for entry in dirnames + filenames:
            yield Path(dirpath) / entry


def chown_tree(root: Path, identity: Identity) -> int:
    """Recursively give ``root`` to ``identity`` without following symlinks."""
    count = 0
    for path in _walk(root):
        try:
            os.chown(path, identity.uid, identity.gid, follow_symlinks=False)
        except OSError as e:
            raise IdentityError(
                f"Could not change ownership of {path}.",
                context={"user": identity.name, "error": str(e)},
            ) from e
        count += 1
    logger.info(f"Changed ownership of {count} entries under {root} to {identity.name}")
    return count


def foreign_owned(root: Path, identity: Identity) -> list[Path]:
    """Return every entry under ``root`` not owned by ``identity``."""
    return [p for p in _walk(root) if os.lstat(p).st_uid != identity.uid]


def assert_owned_by(root: Path, identity: Identity) -> None:
    offenders = foreign_owned(root, identity)
    if offenders:
        raise IdentityError(
            f"{len(offenders)} entries under {root} are not owned by {identity.name}.",
            context={"first": str(offenders[0])},
        )


def drop_privileges(identity: Identity, environ: MutableMapping[str, str] | None = None) -> None:
    """Permanently switch the process to ``identity``.

    Groups, then gid, then uid: once the uid changes the others can no
    longer be set. Afterwards regaining root must be impossible.
    """
    env = os.environ if environ is None else environ

    if os.getuid() == identity.uid and os.geteuid() == identity.uid:
        logger.info(f"Already running as {identity.name}")
    else:
        if os.geteuid() != 0:
            raise PrivilegeError(
                f"Cannot switch to {identity.name}: not running as root.",
                context={"uid": str(os.getuid())},
            )
        logger.info(f"Dropping privileges to {identity.name} (uid={identity.uid}, gid={identity.gid})")
        try:
            os.initgroups(identity.name, identity.gid)
            os.setgid(identity.gid)
            os.setuid(identity.uid)
        except OSError as e:
            raise PrivilegeError(
                f"Failed to drop privileges to {identity.name}.",
                context={"error": str(e)},
            ) from e

    if os.getuid() != identity.uid or os.geteuid() != identity.uid:
        raise PrivilegeError(
            f"Still not running as {identity.name} after privilege drop.",
            context={"uid": str(os.getuid()), "euid": str(os.geteuid())},
        )
    if os.getgid() != identity.gid or os.getegid() != identity.gid:
        raise PrivilegeError(
            f"Group is not {identity.gid} after privilege drop.",
            context={"gid": str(os.getgid()), "egid": str(os.getegid())},
        )
    try:
        os.setuid(0)
    except PermissionError:
        pass
    else:
        raise PrivilegeError("Root privileges could be regained after dropping them.")

    env["HOME"] = str(identity.home)
    env["USER"] = identity.name
    env["LOGNAME"] = identity.name
