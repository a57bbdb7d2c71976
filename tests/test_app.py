import json
from datetime import date
from unittest.mock import patch

import pytest

from study_scheduler.app import (
    FormCancelled, build_week_table, cmd_advance, cmd_book, cmd_export, cmd_import, cmd_toggle,
    cmd_video, form_date_prompt, form_int_prompt, form_prompt, main, progress_bar,
)
from study_scheduler.config import Settings
from study_scheduler.distribution import schedule_book, schedule_video
from study_scheduler.models import VideoSection
from study_scheduler.planner import generate_weekly_plan
from study_scheduler.storage import local_backend


def clock():
    return date(2024, 1, 1)


@pytest.fixture
def backend(tmp_store):
    return local_backend(tmp_store)


def test_form_prompt_raises_on_q():
    with patch("study_scheduler.app.Prompt.ask", return_value="q"):
        with pytest.raises(FormCancelled):
            form_prompt("Title")


def test_form_prompt_raises_on_menu():
    with patch("study_scheduler.app.Prompt.ask", return_value=" MENU "):
        with pytest.raises(FormCancelled):
            form_prompt("Title")


def test_form_prompt_accepts_q_as_choice():
    with patch("study_scheduler.app.Prompt.ask", return_value="paste") as ask:
        assert form_prompt("Source", choices=["paste", "file"]) == "paste"
    assert ask.call_args.kwargs["choices"] == ["paste", "file", "q"]


def test_form_int_prompt_retries_until_number():
    with patch("study_scheduler.app.Prompt.ask", side_effect=["abc", "7"]):
        assert form_int_prompt("Start page") == 7


def test_form_date_prompt_retries_until_date():
    with patch("study_scheduler.app.Prompt.ask", side_effect=["2024-13-01", "2024-02-01"]):
        assert form_date_prompt("Start date", date(2024, 1, 1)) == date(2024, 2, 1)


def test_cmd_book_saves_book(backend):
    answers = ["Fluent Python", "1", "100", "2024-01-01", "2024-01-10", ""]
    with patch("study_scheduler.app.Prompt.ask", side_effect=answers), \
         patch("study_scheduler.app.Confirm.ask", return_value=True):
        book = cmd_book(backend, clock)
    assert book.pages_per_day == 10
    assert backend.materials.get_all() == [book]


def test_cmd_book_invalid_form_saves_nothing(backend):
    answers = ["Fluent Python", "50", "10", "2024-01-01", "2024-01-10", ""]
    with patch("study_scheduler.app.Prompt.ask", side_effect=answers):
        assert cmd_book(backend, clock) is None
    assert backend.materials.get_all() == []


def test_cmd_book_declined(backend):
    answers = ["Fluent Python", "1", "100", "2024-01-01", "2024-01-10", ""]
    with patch("study_scheduler.app.Prompt.ask", side_effect=answers), \
         patch("study_scheduler.app.Confirm.ask", return_value=False):
        assert cmd_book(backend, clock) is None
    assert backend.materials.get_all() == []


def test_cmd_book_cancel_mid_form(backend):
    with patch("study_scheduler.app.Prompt.ask", side_effect=["Fluent Python", "q"]):
        with pytest.raises(FormCancelled):
            cmd_book(backend, clock)


def test_cmd_video_from_paste(backend):
    answers = ["Async course", "paste", "2024-01-01", "2024-01-02", ""]
    pasted = ["Intro", "05:39", "Basics", "12:45", "END"]
    with patch("study_scheduler.app.Prompt.ask", side_effect=answers), \
         patch("study_scheduler.app.console.input", side_effect=pasted), \
         patch("study_scheduler.app.Confirm.ask", return_value=True):
        video = cmd_video(backend, clock)
    assert [s.title for s in video.sections] == ["Intro", "Basics"]
    assert video.sections_per_day == 1
    assert backend.materials.get_by_id(video.id) == video


def test_cmd_video_from_file(backend, tmp_path):
    listing = tmp_path / "lectures.txt"
    listing.write_text("Intro\n05:39\nBasics\n12:45\n", encoding="utf-8")
    answers = ["Async course", "file", str(listing), "2024-01-01", "2024-01-02", ""]
    with patch("study_scheduler.app.Prompt.ask", side_effect=answers), \
         patch("study_scheduler.app.Confirm.ask", return_value=True):
        video = cmd_video(backend, clock)
    assert len(video.sections) == 2


def test_cmd_video_missing_file(backend, tmp_path):
    answers = ["Async course", "file", str(tmp_path / "missing.txt")]
    with patch("study_scheduler.app.Prompt.ask", side_effect=answers):
        assert cmd_video(backend, clock) is None


def test_cmd_video_without_durations(backend):
    answers = ["Async course", "paste", "2024-01-01", "2024-01-02", ""]
    with patch("study_scheduler.app.Prompt.ask", side_effect=answers), \
         patch("study_scheduler.app.console.input", side_effect=["Just a title", "END"]):
        assert cmd_video(backend, clock) is None
    assert backend.materials.get_all() == []


def test_cmd_toggle_marks_and_unmarks(backend):
    book = schedule_book("Fluent Python", 100, date(2024, 1, 1), date(2024, 1, 10))
    backend.materials.add(book)
    with patch("study_scheduler.app.Prompt.ask", side_effect=["2024-01-02", "1"]):
        cmd_toggle(backend, completed=True, clock=clock)
    assert backend.completed_tasks.get_all() == {f"{book.id}-2024-01-02"}
    assert backend.materials.get_by_id(book.id).current_page == 0

    with patch("study_scheduler.app.Prompt.ask", side_effect=["2024-01-02", "1"]):
        cmd_toggle(backend, completed=False, clock=clock)
    assert backend.completed_tasks.get_all() == set()


def test_cmd_toggle_day_without_tasks(backend):
    with patch("study_scheduler.app.Prompt.ask", side_effect=["2024-01-02"]):
        cmd_toggle(backend, completed=True, clock=clock)
    assert backend.completed_tasks.get_all() == set()


def test_cmd_advance_book(backend):
    book = schedule_book("Fluent Python", 100, date(2024, 1, 1), date(2024, 1, 10))
    backend.materials.add(book)
    with patch("study_scheduler.app.Prompt.ask", side_effect=["1", "250"]):
        cmd_advance(backend)
    assert backend.materials.get_by_id(book.id).current_page == 100


def test_cmd_advance_video(backend):
    sections = [VideoSection(id=f"video-{i}", title=f"Lecture {i}", duration=30, order=i) for i in range(3)]
    video = schedule_video("Async course", sections, date(2024, 1, 1), date(2024, 1, 3))
    backend.materials.add(video)
    with patch("study_scheduler.app.Prompt.ask", side_effect=["1", "2"]):
        cmd_advance(backend)
    stored = backend.materials.get_by_id(video.id)
    assert stored.current_progress == 2
    assert [s.completed for s in stored.sections] == [True, True, False]


def test_export_then_import(backend, tmp_path):
    backend.materials.add(schedule_book("Fluent Python", 100, date(2024, 1, 1), date(2024, 1, 10)))
    path = tmp_path / "backup.json"
    with patch("study_scheduler.app.Prompt.ask", return_value=str(path)):
        cmd_export(backend, clock)
    assert json.loads(path.read_text(encoding="utf-8"))["materials"][0]["title"] == "Fluent Python"

    backend.materials.clear()
    with patch("study_scheduler.app.Prompt.ask", return_value=str(path)), \
         patch("study_scheduler.app.Confirm.ask", return_value=True):
        cmd_import(backend)
    assert [m.title for m in backend.materials.get_all()] == ["Fluent Python"]


def test_build_week_table_has_seven_columns(backend):
    book = schedule_book("Fluent Python", 100, date(2024, 1, 1), date(2024, 1, 10))
    plan = generate_weekly_plan([book], date(2023, 12, 31))
    table = build_week_table(plan, {f"{book.id}-2024-01-01"}, clock)
    assert len(table.columns) == 7


def test_progress_bar():
    assert progress_bar(0).count("█") == 0
    assert progress_bar(50).count("█") == 10
    assert "green" in progress_bar(100)


def test_main_runs_and_quits(tmp_path):
    with patch("study_scheduler.app.load_settings", return_value=Settings(data_dir=tmp_path)), \
         patch("study_scheduler.app.Prompt.ask", side_effect=["list", "book", "q", "quit"]):
        main()
