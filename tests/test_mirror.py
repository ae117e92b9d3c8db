from pathlib import Path

from contentful_sync.models import ImageRecord
from contentful_sync.sync.mirror import Mirror


def _rec(path, token="", fingerprint="fp"):
    path = Path(path)
    return ImageRecord(path=path, relative_path=path.name, file_name=path.name,
                       identity_token=token, content_fingerprint=fingerprint)


def on_disk(*paths):
    present = {Path(p) for p in paths}
    return lambda p: Path(p) in present


def test_find_by_token_prefers_record_still_on_disk():
    old = _rec("/assets/$Rose.jpg", "rose-id")
    new = _rec("/assets/$Rose-Red.jpg", "rose-id")
    mirror = Mirror([old, new], exists=on_disk("/assets/$Rose-Red.jpg"))

    assert mirror.find_by_token("rose-id").path == new.path


def test_find_by_token_with_both_copies_present():
    first = _rec("/assets/$Rose.jpg", "rose-id")
    second = _rec("/assets/$Rose copy.jpg", "rose-id")
    mirror = Mirror([first, second], exists=on_disk(first.path, second.path))

    # Both exist: the earlier record keeps the token
    assert mirror.find_by_token("rose-id").path == first.path


def test_find_by_token_ignores_empty_token():
    mirror = Mirror([_rec("/assets/$Rose.jpg")])
    assert mirror.find_by_token("") is None


def test_relocate_drops_missing_record_for_token():
    old = _rec("/assets/$Rose.jpg", "rose-id", "fp1")
    mirror = Mirror([old], exists=on_disk("/assets/$Rose-Red.jpg"))

    mirror.relocate("rose-id", _rec("/assets/$Rose-Red.jpg", "rose-id", "fp1"))

    assert len(mirror) == 1
    assert mirror.find_by_path(old.path) is None
    assert mirror.find_by_token("rose-id").path == Path("/assets/$Rose-Red.jpg")


def test_relocate_keeps_copy_still_on_disk():
    old = _rec("/assets/$Rose.jpg", "rose-id")
    other = _rec("/assets/$Fern.jpg", "fern-id")
    mirror = Mirror([old, other], exists=on_disk(old.path, other.path, "/assets/$Rose-Red.jpg"))

    mirror.relocate("rose-id", _rec("/assets/$Rose-Red.jpg", "rose-id"))

    assert len(mirror) == 3
    assert mirror.find_by_path(old.path).identity_token == "rose-id"
    assert mirror.find_by_path(other.path) is not None


def test_relocate_replaces_record_at_new_path():
    squatter = _rec("/assets/$Rose-Red.jpg")
    old = _rec("/assets/$Rose.jpg", "rose-id")
    mirror = Mirror([squatter, old], exists=on_disk("/assets/$Rose-Red.jpg"))

    mirror.relocate("rose-id", _rec("/assets/$Rose-Red.jpg", "rose-id"))

    assert [r.identity_token for r in mirror.records()] == ["rose-id"]


def test_add_untagged_keeps_assigned_token():
    mirror = Mirror([_rec("/assets/$Rose.jpg")])
    mirror.assign_token(Path("/assets/$Rose.jpg"), "rose-id")

    # Disk still shows no token until the write-back lands
    assert not mirror.add_untagged(_rec("/assets/$Rose.jpg"))
    assert mirror.find_by_path(Path("/assets/$Rose.jpg")).identity_token == "rose-id"


def test_add_untagged_replaces_untagged_record():
    mirror = Mirror([_rec("/assets/$Rose.jpg", fingerprint="fp1")])

    assert mirror.add_untagged(_rec("/assets/$Rose.jpg", fingerprint="fp2"))
    assert len(mirror) == 1
    assert mirror.find_by_path(Path("/assets/$Rose.jpg")).content_fingerprint == "fp2"


def test_lookups_return_copies():
    mirror = Mirror([_rec("/assets/$Rose.jpg", "rose-id")])

    found = mirror.find_by_token("rose-id")
    found.identity_token = "changed"

    assert mirror.find_by_token("rose-id") is not None
