"""Tests for the edit session state machine."""

import time
from unittest.mock import Mock

import pytest

from pyeo.exceptions import (
    EoDownloadError,
    EoEditorError,
    EoNotFoundError,
    EoTransientError,
    EoWatchError,
)
from pyeo.models import Backend, RemoteObjectRef, SessionState
from pyeo.sync import SyncSession


@pytest.fixture
def make_session(storage, ref, watcher_factory, quiet_output):
    """Build sessions wired to the fakes."""

    def factory(editor, **kwargs):
        kwargs.setdefault("debounce", 0.05)
        kwargs.setdefault("retry_delay", 0.0)
        kwargs.setdefault("watcher_factory", watcher_factory)
        return SyncSession(
            storage,
            kwargs.pop("ref", ref),
            editor_command="fake-editor",
            editor=editor,
            output=quiet_output,
            **kwargs,
        )

    return factory


class TestEditFlow:
    """End-to-end scenarios with a scripted editor."""

    def test_edit_is_uploaded_once_after_debounce(
        self, make_session, storage, ref, watcher_factory
    ):
        """Test download, one debounced upload and a clean exit."""
        seen = {}

        def editor(command, path):
            seen["command"] = command
            seen["initial"] = path.read_bytes()
            path.write_bytes(b"v2")
            watcher_factory.last.emit()
            watcher_factory.last.emit()
            assert storage.wait_for_uploads(1)
            time.sleep(0.15)
            return 0

        result = make_session(editor).run()

        assert seen["command"] == "fake-editor"
        assert seen["initial"] == b"v1"
        assert storage.uploads == [(ref, b"v2")]
        assert result.editor_exit_code == 0
        assert result.succeeded is True
        assert result.uploads == 1
        assert result.final_flush is False

    def test_editor_failure_is_reported_after_sync(
        self, make_session, storage, ref, watcher_factory
    ):
        """Test a non-zero editor exit with a successful upload."""

        def editor(command, path):
            path.write_bytes(b"v2")
            watcher_factory.last.emit()
            assert storage.wait_for_uploads(1)
            return 1

        result = make_session(editor).run()

        assert result.editor_exit_code == 1
        assert result.succeeded is False
        assert storage.uploads == [(ref, b"v2")]

    def test_unflushed_edit_is_uploaded_on_exit(self, make_session, storage, ref):
        """Test the final flush when the editor exits before any event."""

        def editor(command, path):
            path.write_bytes(b"v2")
            return 0

        result = make_session(editor, debounce=30.0).run()

        assert storage.uploads == [(ref, b"v2")]
        assert result.final_flush is True

    def test_pending_window_is_flushed_on_exit(
        self, make_session, storage, ref, watcher_factory
    ):
        """Test that an armed debounce window does not delay shutdown."""

        def editor(command, path):
            path.write_bytes(b"v2")
            watcher_factory.last.emit()
            return 0

        start = time.monotonic()
        result = make_session(editor, debounce=30.0).run()

        assert time.monotonic() - start < 10
        assert storage.uploads == [(ref, b"v2")]
        assert result.uploads == 1

    def test_no_upload_without_changes(self, make_session, storage):
        """Test that opening and closing the editor uploads nothing."""
        result = make_session(lambda command, path: 0).run()

        assert storage.uploads == []
        assert result.uploads == 0

    def test_state_is_editing_while_editor_runs(self, make_session):
        """Test the lifecycle states around the editor."""
        session = None
        states = []

        def editor(command, path):
            states.append(session.state)
            return 0

        session = make_session(editor)
        assert session.state is SessionState.INITIALIZING
        session.run()

        assert states == [SessionState.EDITING]
        assert session.state is SessionState.TERMINATED

    def test_session_runs_only_once(self, make_session):
        """Test that a finished session cannot be restarted."""
        session = make_session(lambda command, path: 0)
        session.run()

        with pytest.raises(RuntimeError, match="only be run once"):
            session.run()

    def test_watcher_is_stopped_after_session(self, make_session, watcher_factory):
        """Test that no watcher outlives the session."""
        make_session(lambda command, path: 0).run()

        assert watcher_factory.last.started is True
        assert watcher_factory.last.stopped is True


class TestWorkingCopy:
    """Tests for the working copy lifecycle."""

    def test_temp_working_copy_is_removed(self, make_session, storage, ref):
        """Test that an allocated temp file is deleted after the session."""
        paths = []
        session = make_session(lambda command, path: paths.append(path) or 0)
        session.run()

        assert session.working_copy.temporary is True
        assert not paths[0].exists()

    def test_temp_working_copy_keeps_key_extension(
        self, make_session, storage, quiet_output
    ):
        """Test that the temp file suffix mirrors the object key."""
        yaml_ref = RemoteObjectRef(Backend.GCS, "bucket", "dir/config.yaml")
        storage.objects[yaml_ref] = b"a: 1\n"
        paths = []

        make_session(
            lambda command, path: paths.append(path) or 0, ref=yaml_ref
        ).run()

        assert paths[0].suffix == ".yaml"
        assert paths[0].name.startswith("eo-")

    def test_caller_path_is_used_and_kept(self, make_session, tmp_path):
        """Test that a caller-supplied path is not deleted."""
        local = tmp_path / "local.txt"

        def editor(command, path):
            assert path == local
            return 0

        session = make_session(editor, file_path=local)
        session.run()

        assert session.working_copy.temporary is False
        assert local.read_bytes() == b"v1"

    def test_unsynced_temp_copy_is_kept(self, make_session, storage):
        """Test that edits that could not be uploaded are not deleted."""
        storage.upload_errors = [EoTransientError("down")] * 10

        def editor(command, path):
            path.write_bytes(b"v2")
            return 0

        session = make_session(editor, max_retries=1)
        result = session.run()

        try:
            assert result.unsynced is True
            assert result.failed_uploads == 1
            assert session.working_copy.path.read_bytes() == b"v2"
        finally:
            session.working_copy.path.unlink()


class TestFatalErrors:
    """Tests for failures before editing starts."""

    def test_download_failure_never_launches_editor(self, make_session, storage):
        """Test that a failed download is fatal and skips the editor."""
        storage.download_error = EoNotFoundError("Object not found: s3://b/k")
        editor = Mock(return_value=0)
        session = make_session(editor)

        with pytest.raises(EoDownloadError, match="Failed to download") as exc_info:
            session.run()

        assert isinstance(exc_info.value.__cause__, EoNotFoundError)
        editor.assert_not_called()
        assert not session.working_copy.path.exists()
        assert session.state is SessionState.TERMINATED

    def test_download_failure_leaves_caller_file_untouched(
        self, make_session, storage, tmp_path
    ):
        """Test that the caller's file is not modified on a failed download."""
        storage.download_error = EoTransientError("timeout")
        local = tmp_path / "local.txt"
        local.write_bytes(b"precious")

        with pytest.raises(EoDownloadError):
            make_session(Mock(return_value=0), file_path=local).run()

        assert local.read_bytes() == b"precious"

    def test_watch_failure_never_launches_editor(
        self, make_session, storage, failing_watcher_factory
    ):
        """Test that a failed watch is fatal."""
        editor = Mock(return_value=0)

        with pytest.raises(EoWatchError):
            make_session(editor, watcher_factory=failing_watcher_factory).run()

        editor.assert_not_called()
        assert storage.uploads == []

    def test_editor_start_failure_still_shuts_down(
        self, make_session, watcher_factory
    ):
        """Test that the worker is stopped when the editor cannot start."""
        editor = Mock(side_effect=EoEditorError("Could not start editor"))
        session = make_session(editor)

        with pytest.raises(EoEditorError):
            session.run()

        assert watcher_factory.last.stopped is True
        assert session.state is SessionState.TERMINATED
