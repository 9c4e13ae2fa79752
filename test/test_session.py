"""
Pytest test suite for EditSession.
"""
import asyncio

import pytest

from dcmpatch import (
    BINARY_SENTINEL,
    EXPORT_FILENAME,
    MEDIA_TYPE,
    BinaryElementError,
    Edit,
    EditSession,
    LengthMismatchError,
    LengthPolicy,
    MalformedFileError,
    SessionError,
    SessionState,
    UnknownTagError,
    decode,
    patch,
)


@pytest.fixture
def session(patient_file):
    s = EditSession()
    s.load(patient_file)
    return s


# --- Group 1: Lifecycle ---
class TestLifecycle:
    """EMPTY -> LOADED -> EXPORTED transitions."""

    def test_new_session_is_empty(self):
        s = EditSession()
        assert s.state is SessionState.EMPTY
        assert s.rows() == []
        assert s.decoded is None
        assert s.original is None

    @pytest.mark.parametrize("call", [
        lambda s: s.edit('00100010', "X"),
        lambda s: s.export(),
        lambda s: s.row('00100010'),
        lambda s: s.revert('00100010'),
        lambda s: s.revert_all(),
    ])
    def test_empty_session_rejects(self, call):
        with pytest.raises(SessionError):
            call(EditSession())

    def test_load(self, session, patient_file):
        assert session.state is SessionState.LOADED
        assert session.original == patient_file
        assert len(session.rows()) == len(decode(patient_file))
        assert not session.dirty

    def test_export_then_edit(self, session):
        session.export()
        assert session.state is SessionState.EXPORTED
        session.edit('00100010', "SMITH^JANE")
        assert session.state is SessionState.LOADED

    def test_reload_discards_edits(self, session, pn_only):
        session.edit('00100010', "SMITH^JANE")
        session.load(pn_only)
        assert session.state is SessionState.LOADED
        assert not session.dirty
        assert session.row('00100010').value == "DOE^JOHN"
        assert len(session.rows()) == 1

    def test_reload_after_export(self, session, pn_only):
        session.export()
        session.load(pn_only)
        assert session.state is SessionState.LOADED

    def test_failed_load_keeps_previous_file(self, session, patient_file):
        session.edit('00100010', "SMITH^JANE")
        with pytest.raises(MalformedFileError):
            session.load(patient_file[:-5])
        assert session.state is SessionState.LOADED
        assert session.original == patient_file
        assert session.edits == [Edit('00100010', "SMITH^JANE")]

    def test_failed_load_on_empty_session(self):
        s = EditSession()
        with pytest.raises(MalformedFileError):
            s.load(b"")
        assert s.state is SessionState.EMPTY


# --- Group 2: Editing ---
class TestEditing:
    """Edit log and working rows."""

    def test_edit_updates_row(self, session):
        row = session.edit('(0010,0010)', "SMITH^JANE")
        assert row.value == "SMITH^JANE"
        assert session.row('00100010').value == "SMITH^JANE"
        assert session.dirty
        # decoded table keeps the original value
        assert session.decoded['00100010'].value == "DOE^JOHN"

    def test_rows_keep_order(self, session):
        before = [row.raw_tag for row in session.rows()]
        session.edit('00100020', "ID002")
        assert [row.raw_tag for row in session.rows()] == before

    def test_edit_unknown_tag(self, session):
        with pytest.raises(UnknownTagError):
            session.edit('00100030', "19700101")
        assert not session.dirty

    def test_edit_binary(self, session):
        with pytest.raises(BinaryElementError):
            session.edit('7FE00010', "X")

    def test_binary_row_lookup(self, session):
        row = session.row('7FE00010')
        assert row.value == BINARY_SENTINEL
        assert not row.editable

    def test_row_unknown(self, session):
        with pytest.raises(UnknownTagError):
            session.row('00100030')

    def test_edit_accepts_any_length(self, session):
        """Length is only checked at export."""
        session.edit('00100010', "SMITH")
        assert session.row('00100010').value == "SMITH"

    def test_check(self, session):
        assert session.check('00100010', "SMITH^JANE") == b"SMITH^JANE"
        with pytest.raises(LengthMismatchError):
            session.check('00100010', "SMITH")
        assert session.check('00100010', "SMITH", LengthPolicy.PAD) == b"SMITH     "
        assert not session.dirty

    def test_revert(self, session):
        session.edit('00100010', "SMITH^JANE")
        session.edit('00100020', "ID002")
        row = session.revert('00100010')
        assert row.value == "DOE^JOHN"
        assert session.edits == [Edit('00100020', "ID002")]

    def test_revert_all(self, session):
        session.edit('00100010', "SMITH^JANE")
        session.revert_all()
        assert not session.dirty
        assert session.row('00100010').value == "DOE^JOHN"

    def test_edits_property_is_a_copy(self, session):
        session.edit('00100010', "SMITH^JANE")
        session.edits.clear()
        assert session.dirty


# --- Group 3: Export ---
class TestExport:
    """Export hands the edit log to the patcher."""

    def test_export_matches_patch(self, session, patient_file):
        session.edit('00100010', "SMITH^JANE")
        export = session.export()
        expected = patch(patient_file, decode(patient_file), [Edit('00100010', "SMITH^JANE")])
        assert export.data == expected
        assert export.filename == EXPORT_FILENAME == "modified.dcm"
        assert export.media_type == MEDIA_TYPE == "application/dicom"

    def test_export_without_edits(self, session, patient_file):
        assert session.export().data == patient_file

    def test_export_displayed_values(self, session, patient_file):
        """Re-entering the shown values leaves the file unchanged."""
        for row in session.rows():
            if row.editable:
                session.edit(row.raw_tag, row.value)
        assert session.export().data == patient_file

    def test_export_keeps_original(self, session, patient_file):
        session.edit('00100010', "SMITH^JANE")
        session.export()
        assert session.original == patient_file

    def test_failed_export_keeps_state(self, session):
        session.edit('00100010', "SMITH")
        with pytest.raises(LengthMismatchError):
            session.export()
        assert session.state is SessionState.LOADED
        assert session.dirty

    def test_export_with_pad(self, session):
        session.edit('00100010', "SMITH")
        data = session.export(policy=LengthPolicy.PAD).data
        assert decode(data)['00100010'].value == "SMITH"

    def test_save(self, session, tmp_path):
        session.edit('00100010', "SMITH^JANE")
        path = tmp_path / "out.dcm"
        export = session.save(path)
        assert path.read_bytes() == export.data
        assert session.state is SessionState.EXPORTED


# --- Group 4: Files ---
class TestFiles:

    def test_load_file(self, tmp_path, patient_file):
        path = tmp_path / "in.dcm"
        path.write_bytes(patient_file)
        s = EditSession()
        s.load_file(path)
        assert s.original == patient_file

    def test_load_file_async(self, tmp_path, patient_file):
        path = tmp_path / "in.dcm"
        path.write_bytes(patient_file)
        s = EditSession()
        decoded = asyncio.run(s.load_file_async(path))
        assert decoded['00100010'].value == "DOE^JOHN"
        assert s.state is SessionState.LOADED

    def test_load_missing_file(self, tmp_path):
        s = EditSession()
        with pytest.raises(FileNotFoundError):
            s.load_file(tmp_path / "missing.dcm")
        assert s.state is SessionState.EMPTY
