"""Document version persistence: save, prune, list, load, diff, and revert operations

Versions are kept per (record_id, field): the structured-text field of one
record. Embedded blocks have no history of their own; editing one creates a
new version of the enclosing field.
"""

from sqlmodel import Session, select

from dastkit.core.models import Root
from dastkit.core.serialization import decode
from dastkit.core.traversal import Change, diff
from dastkit.core.utils.hashing import canonical_json, sha256
from dastkit.crud.tables import DocumentVersion


def _versions(record_id: str, field: str):
    return (
        select(DocumentVersion)
        .where(DocumentVersion.record_id == record_id)
        .where(DocumentVersion.field == field)
    )


def get_version(session: Session, record_id: str, field: str, version_num: int) -> DocumentVersion:
    """Return one stored version. Raises ValueError if it does not exist."""
    v = session.exec(
        _versions(record_id, field).where(DocumentVersion.version_num == version_num)
    ).one_or_none()
    if v is None:
        raise ValueError(f"Version {version_num} not found for {record_id}.{field}")
    return v


def list_versions(session: Session, record_id: str, field: str) -> list[DocumentVersion]:
    """Return all versions for a record field ordered by version_num ascending."""
    return list(session.exec(_versions(record_id, field).order_by(DocumentVersion.version_num.asc())).all())


def load_version(session: Session, record_id: str, field: str, version_num: int) -> Root:
    """Decode a stored version back into a tree."""
    return decode(get_version(session, record_id, field, version_num).document)


def prune_versions(session: Session, record_id: str, field: str, max_versions: int) -> int:
    """Delete oldest versions beyond max_versions. Returns count deleted. No-op if max_versions=0."""
    if max_versions == 0:
        return 0

    versions = list_versions(session, record_id, field)
    excess = len(versions) - max_versions
    if excess <= 0:
        return 0

    for v in versions[:excess]:
        session.delete(v)
    session.flush()

    return excess


def save_version(
    session: Session,
    record_id: str,
    field: str,
    tree: Root,
    max_versions: int = 10,
    ) -> tuple[DocumentVersion, bool]:
    """Snapshot a tree as the next version of a record field.

    Returns (version, created). If the tree is identical to the latest version
    nothing is written and (latest, False) is returned. Prunes after saving
    when max_versions > 0. Flushes but does not commit.
    """
    document = canonical_json(tree)
    digest = sha256(document)

    latest = session.exec(
        _versions(record_id, field).order_by(DocumentVersion.version_num.desc())
    ).first()
    if latest is not None and latest.hash == digest:
        return latest, False

    version = DocumentVersion(
        record_id=record_id,
        field=field,
        version_num=(latest.version_num if latest else 0) + 1,
        document=document,
        hash=digest,
    )
    session.add(version)
    session.flush()

    if max_versions > 0:
        prune_versions(session, record_id, field, max_versions)

    return version, True


def diff_versions(session: Session, record_id: str, field: str, from_num: int, to_num: int) -> list[Change]:
    """Positional tree diff between two stored versions. Raises ValueError if either is missing."""
    return diff(
        load_version(session, record_id, field, from_num),
        load_version(session, record_id, field, to_num),
    )


def revert_to_version(
    session: Session,
    record_id: str,
    field: str,
    version_num: int,
    max_versions: int = 10,
    ) -> DocumentVersion:
    """Promote a prior version's content as the newest version.

    Raises ValueError if version_num is not found. If the target already
    equals the latest version no new row is written and the latest is returned.
    """
    target = load_version(session, record_id, field, version_num)
    version, _ = save_version(session, record_id, field, target, max_versions=max_versions)
    return version
