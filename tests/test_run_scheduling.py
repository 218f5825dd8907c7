"""
Tests for the command-line tool.
"""

import json

import pytest

from run_scheduling import EXIT_CONFLICTS, EXIT_INPUT_ERROR, EXIT_OK, main


SESSIONS = (
    "id,lesson_date,start_time,end_time,teacher_id,branch,classroom,student_ids\n"
    "ls_1,2025-03-10,14:00,15:00,t_1,Okskaya,101,s_1\n"
    "ls_2,2025-03-10,14:00,15:00,t_2,Okskaya,102,s_2\n"
)

PROPOSAL_HEADER = "id,lesson_date,start_time,end_time,teacher_id,branch,classroom\n"

TEACHERS = (
    "teacher_id,first_name,last_name,subjects,branches\n"
    "t_1,Anna,Petrova,English,Okskaya\n"
    "t_3,Dmitry,Orlov,English,Okskaya\n"
)


@pytest.fixture
def files(tmp_path):
    sessions = tmp_path / "sessions.csv"
    sessions.write_text(SESSIONS, encoding="utf-8")
    teachers = tmp_path / "teachers.csv"
    teachers.write_text(TEACHERS, encoding="utf-8")
    return tmp_path, sessions, teachers


def write_proposals(tmp_path, *rows):
    path = tmp_path / "proposals.csv"
    path.write_text(PROPOSAL_HEADER + "".join(row + "\n" for row in rows), encoding="utf-8")
    return path


def run_check(tmp_path, sessions, proposals):
    return main([
        "check",
        "--sessions", str(sessions),
        "--proposals", str(proposals),
        "--output", str(tmp_path / "reports"),
    ])


class TestCheckCommand:
    """Test cases for `check`."""

    def test_no_conflicts(self, files):
        """Test exit 0 and a JSON report when proposals are free."""
        tmp_path, sessions, _ = files
        proposals = write_proposals(tmp_path, "p_1,2025-03-10,15:00,16:00,t_1,Okskaya,101")

        assert run_check(tmp_path, sessions, proposals) == EXIT_OK

        reports = list((tmp_path / "reports").glob("conflict_report_*.json"))
        assert len(reports) == 1
        report = json.loads(reports[0].read_text(encoding="utf-8"))
        assert report["summary"]["with_conflicts"] == 0
        assert not list((tmp_path / "reports").glob("conflicts_*.csv"))

    def test_conflicts(self, files, capsys):
        """Test exit 1 and a conflicts CSV when a proposal clashes."""
        tmp_path, sessions, _ = files
        proposals = write_proposals(tmp_path, "p_1,2025-03-10,14:30,15:30,t_3,Okskaya,101")

        assert run_check(tmp_path, sessions, proposals) == EXIT_CONFLICTS

        assert "ls_1" in capsys.readouterr().out
        assert len(list((tmp_path / "reports").glob("conflicts_*.csv"))) == 1

    def test_bad_row(self, files, capsys):
        """Test exit 2 when a proposal row is invalid."""
        tmp_path, sessions, _ = files
        proposals = write_proposals(
            tmp_path,
            "p_1,2025-03-10,15:00,16:00,t_1,Okskaya,101",
            "p_2,2025-03-10,16:00,15:00,t_1,Okskaya,101",
        )

        assert run_check(tmp_path, sessions, proposals) == EXIT_INPUT_ERROR
        assert "line 3" in capsys.readouterr().out

    def test_missing_file(self, files):
        """Test exit 2 for a missing input file."""
        tmp_path, sessions, _ = files

        assert run_check(tmp_path, sessions, tmp_path / "missing.csv") == EXIT_INPUT_ERROR


class TestAvailableCommand:
    """Test cases for `available`."""

    def available(self, sessions, teachers, start, end_time=None):
        argv = [
            "available",
            "--sessions", str(sessions),
            "--teachers", str(teachers),
            "--date", "2025-03-10",
            "--time", start,
            "--subject", "English",
            "--branch", "Okskaya",
        ]
        if end_time:
            argv += ["--end-time", end_time]
        return main(argv)

    def test_free_teacher_listed_first(self, files, capsys):
        """Test the free teacher is ranked above the busy one."""
        _, sessions, teachers = files

        assert self.available(sessions, teachers, "14:00") == EXIT_OK

        out = capsys.readouterr().out
        assert out.index("Dmitry Orlov") < out.index("Anna Petrova")

    def test_invalid_slot(self, files):
        """Test exit 2 when the end time is before the start time."""
        _, sessions, teachers = files

        assert self.available(sessions, teachers, "14:00", end_time="13:00") == EXIT_INPUT_ERROR
