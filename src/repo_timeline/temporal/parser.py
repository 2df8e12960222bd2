"""Parse raw git output into RawCommit / RawRef records.

``git log`` is asked for one record per commit, each starting with a
record separator (0x1e) and with fields split by a unit separator (0x1f),
followed by its ``--numstat`` lines. Subjects and bodies may contain any
printable character, so no printable delimiter is safe.
"""

from __future__ import annotations

import re
from typing import Optional

from ..exceptions import ParseError
from ..logging_config import get_logger
from .models import RawCommit, RawRef

logger = get_logger(__name__)

RECORD_SEP = "\x1e"
FIELD_SEP = "\x1f"

# hash, parents, author name, author email, author time, committer time,
# subject, body; numstat lines follow the trailing separator
LOG_FORMAT = "%x1e%H%x1f%P%x1f%an%x1f%ae%x1f%at%x1f%ct%x1f%s%x1f%b%x1f"
_LOG_FIELDS = 8

REF_FORMAT = (
    "%(refname)%1f%(objecttype)%1f%(objectname)%1f%(*objectname)%1f"
    "%(creatordate:unix)%1f%(taggername)%1f%(taggeremail)%1f%(contents:subject)"
)

# SHA-1 or SHA-256 object names
_HASH_RE = re.compile(r"^[0-9a-f]{40}(?:[0-9a-f]{24})?$")
_NUMSTAT_RE = re.compile(r"^(\d+|-)\t(\d+|-)\t.+$")


def split_log_records(raw: str) -> list[str]:
    return [chunk for chunk in raw.split(RECORD_SEP) if chunk.strip()]


def parse_commit_record(record: str) -> RawCommit:
    """Parse one ``git log`` record.

    Raises:
        ParseError: if the header fields are missing or malformed
    """
    parts = record.split(FIELD_SEP, _LOG_FIELDS)
    if len(parts) < _LOG_FIELDS:
        raise ParseError(f"expected {_LOG_FIELDS} fields, got {len(parts)}", record)

    commit_hash, parents_raw, author_name, author_email, at_raw, ct_raw, subject, body = parts[
        :_LOG_FIELDS
    ]
    stats_block = parts[_LOG_FIELDS] if len(parts) > _LOG_FIELDS else ""

    commit_hash = commit_hash.strip()
    if not _HASH_RE.match(commit_hash):
        raise ParseError(f"invalid commit hash {commit_hash!r}", record)

    parents = parents_raw.split()
    for parent in parents:
        if not _HASH_RE.match(parent):
            raise ParseError(f"invalid parent hash {parent!r}", record)

    try:
        author_time = int(at_raw)
        commit_time = int(ct_raw)
    except ValueError:
        raise ParseError(f"invalid timestamp in {commit_hash[:12]}", record)

    commit = RawCommit(
        hash=commit_hash,
        parents=parents,
        author_name=author_name,
        author_email=author_email,
        author_time=author_time,
        commit_time=commit_time,
        subject=subject,
        body=body.strip(),
    )
    _apply_numstat(commit, stats_block)
    return commit


def _apply_numstat(commit: RawCommit, block: str) -> None:
    for line in block.splitlines():
        line = line.strip("\n")
        if not line.strip():
            continue
        if not _NUMSTAT_RE.match(line):
            logger.debug(f"Ignoring unexpected line in {commit.hash[:12]}: {line[:80]!r}")
            continue
        added, deleted, _ = line.split("\t", 2)
        commit.has_stats = True
        commit.files_changed += 1
        # Binary files report "-" for both counts
        if added != "-":
            commit.insertions += int(added)
        if deleted != "-":
            commit.deletions += int(deleted)


def parse_log(raw: str) -> tuple[list[RawCommit], int]:
    """Parse full ``git log`` output.

    Malformed records are logged and skipped.

    Returns:
        (commits in git's output order, number of skipped records)

    Raises:
        ParseError: if there were records but none of them parsed
    """
    records = split_log_records(raw)
    commits: list[RawCommit] = []
    skipped = 0
    for record in records:
        try:
            commits.append(parse_commit_record(record))
        except ParseError as e:
            skipped += 1
            logger.warning(f"Skipping malformed git log record: {e.reason}")

    if records and not commits:
        raise ParseError("no git log record could be parsed", records[0], skipped=skipped)
    return commits, skipped


def parse_refs(raw: str) -> list[RawRef]:
    """Parse ``git for-each-ref`` output produced with REF_FORMAT.

    Symbolic remote HEADs and tags on non-commit objects are dropped.
    """
    refs: list[RawRef] = []
    for line in raw.splitlines():
        if not line.strip():
            continue
        ref = _parse_ref_line(line)
        if ref is not None:
            refs.append(ref)
    return refs


def _parse_ref_line(line: str) -> Optional[RawRef]:
    parts = line.split(FIELD_SEP)
    if len(parts) < 8:
        logger.warning(f"Skipping malformed ref line: {line[:80]!r}")
        return None
    refname, objecttype, objectname, peeled, created, tagger_name, tagger_email = parts[:7]
    message = FIELD_SEP.join(parts[7:])

    if refname.startswith("refs/heads/"):
        return RawRef(name=refname[len("refs/heads/"):], kind="branch", target=objectname)

    if refname.startswith("refs/remotes/"):
        name = refname[len("refs/remotes/"):]
        if name.endswith("/HEAD"):
            return None
        return RawRef(name=name, kind="remote", target=objectname)

    if refname.startswith("refs/tags/"):
        name = refname[len("refs/tags/"):]
        if objecttype == "tag":
            if not peeled:
                return None
            try:
                tagger_time: Optional[int] = int(created)
            except ValueError:
                tagger_time = None
            return RawRef(
                name=name,
                kind="tag",
                target=peeled,
                tagger_time=tagger_time,
                tagger_name=tagger_name,
                tagger_email=tagger_email.strip().strip("<>"),
                message=message,
            )
        if objecttype == "commit":
            return RawRef(name=name, kind="tag", target=objectname)
        return None

    return None
