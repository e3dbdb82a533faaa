import pytest

from services.composer.domain.assets import AssetRole
from services.composer.domain.errors import SessionAssetMissing, SessionNotFound
from services.composer.infrastructure.sessions import (
    FilesystemSessionStore,
    sanitize_filename,
)


class SequenceIds:
    def __init__(self, *ids: str) -> None:
        self._ids = list(ids)

    def generate(self) -> str:
        return self._ids.pop(0)


def _staged(tmp_path, name: str, content: bytes = b"data"):
    staging = tmp_path / "staging"
    staging.mkdir(exist_ok=True)
    path = staging / name
    path.write_bytes(content)
    return path


def test_sanitize_filename_strips_unsafe_characters():
    assert sanitize_filename("my clip (final)!.mp4") == "my_clip_final.mp4"
    assert sanitize_filename("../../etc/passwd") == "passwd"
    assert sanitize_filename("") == "upload"
    assert len(sanitize_filename("a" * 300 + ".png")) == 100


def test_sanitize_filename_keeps_extension_when_truncating():
    long_name = "b" * 116 + ".mp4"

    sanitized = sanitize_filename(long_name)

    assert len(sanitized) == 100
    assert sanitized.endswith(".mp4")
    assert sanitized == "b" * 96 + ".mp4"
    assert sanitize_filename("a" * 300 + ".png").endswith(".png")


def test_create_session_makes_directory(tmp_path):
    store = FilesystemSessionStore(tmp_path / "uploads", id_provider=SequenceIds("abc"))

    session_id = store.create_session()

    assert session_id == "abc"
    assert store.exists("abc")
    assert (tmp_path / "uploads" / "abc").is_dir()


def test_session_ids_are_unique_by_default(tmp_path):
    store = FilesystemSessionStore(tmp_path)

    assert store.create_session() != store.create_session()


def test_commit_then_resolve_by_role(tmp_path):
    store = FilesystemSessionStore(tmp_path / "uploads", id_provider=SequenceIds("s1"))
    session_id = store.create_session()
    source = _staged(tmp_path, "0-clip.mp4", b"video")

    committed = store.commit_asset(session_id, AssetRole.VIDEO, source, "my clip.mp4")

    assert committed.name == "video-my_clip.mp4"
    assert not source.exists()
    assert store.resolve_by_role(session_id, AssetRole.VIDEO) == committed
    assert committed.read_bytes() == b"video"


def test_resolve_missing_role_raises(tmp_path):
    store = FilesystemSessionStore(tmp_path, id_provider=SequenceIds("s1"))
    session_id = store.create_session()

    with pytest.raises(SessionAssetMissing):
        store.resolve_by_role(session_id, AssetRole.BACKGROUND)


def test_overlay_roles_do_not_collide(tmp_path):
    store = FilesystemSessionStore(tmp_path, id_provider=SequenceIds("s1"))
    session_id = store.create_session()
    store.commit_asset(
        session_id, AssetRole.OVERLAY_2, _staged(tmp_path, "b.png"), "b.png"
    )

    with pytest.raises(SessionAssetMissing):
        store.resolve_by_role(session_id, AssetRole.OVERLAY_1)
    assert [path.name for path in store.list_overlays(session_id)] == [
        "overlay2-b.png"
    ]


def test_list_overlays_in_role_order(tmp_path):
    store = FilesystemSessionStore(tmp_path, id_provider=SequenceIds("s1"))
    session_id = store.create_session()
    store.commit_asset(session_id, AssetRole.OVERLAY_2, _staged(tmp_path, "z.png"), "z.png")
    store.commit_asset(session_id, AssetRole.OVERLAY_1, _staged(tmp_path, "a.png"), "a.png")

    names = [path.name for path in store.list_overlays(session_id)]

    assert names == ["overlay1-a.png", "overlay2-z.png"]


@pytest.mark.parametrize("session_id", ["", "../etc", "a/b", "with space"])
def test_invalid_session_ids_are_not_found(tmp_path, session_id):
    store = FilesystemSessionStore(tmp_path)

    assert store.exists(session_id) is False
    with pytest.raises(SessionNotFound):
        store.session_dir(session_id)


def test_unknown_session_is_not_found(tmp_path):
    store = FilesystemSessionStore(tmp_path)

    assert store.exists("missing") is False
    with pytest.raises(SessionNotFound):
        store.resolve_by_role("missing", AssetRole.VIDEO)


def test_discard_removes_session(tmp_path):
    store = FilesystemSessionStore(tmp_path, id_provider=SequenceIds("s1"))
    session_id = store.create_session()
    store.commit_asset(session_id, AssetRole.VIDEO, _staged(tmp_path, "v.mp4"), "v.mp4")

    store.discard(session_id)

    assert not store.exists(session_id)
