from __future__ import annotations
import os
import pytest
from openpyxl import Workbook, load_workbook

from scraper.rolescout import workbook
from scraper.rolescout.errors import PersistenceError
from scraper.rolescout.models import COLUMNS, JobRecord
from scraper.rolescout.workbook import append_records, write_records, read_records, replace_with_retry, temp_path_for


def test_first_write_creates_jobs_sheet_with_header(tmp_path, fast_settings, make_job):
    path = tmp_path / 'devops-jobs.xlsx'
    assert append_records([make_job('SRE')], path, fast_settings)
    wb = load_workbook(path)
    assert wb.sheetnames == ['Jobs']
    rows = list(wb['Jobs'].iter_rows(values_only=True))
    assert rows[0] == COLUMNS
    assert rows[1] == ('SRE', 'Acme', '2-5 Yrs', 'Pune', 'https://jobs.example.com/sre')


def test_append_twice_yields_union_in_call_order(tmp_path, fast_settings, make_job):
    path = tmp_path / 'backend-jobs.xlsx'
    first = [make_job('A'), make_job('B')]
    second = [make_job('C')]
    assert append_records(first, path, fast_settings)
    assert append_records(second, path, fast_settings)
    assert [r.title for r in read_records(path)] == ['A', 'B', 'C']
    assert not temp_path_for(path).exists()


def test_write_replaces_jobs_rows_and_keeps_other_sheets(tmp_path, fast_settings, make_job):
    path = tmp_path / 'x-jobs.xlsx'
    wb = Workbook()
    wb.active.title = 'Notes'
    wb['Notes'].append(['keep me'])
    wb.save(path)
    assert append_records([make_job('Old')], path, fast_settings)
    assert write_records([make_job('New1'), make_job('New2')], path, fast_settings)
    assert [r.title for r in read_records(path)] == ['New1', 'New2']
    wb = load_workbook(path)
    assert 'Notes' in wb.sheetnames
    assert wb['Notes']['A1'].value == 'keep me'


def test_interrupted_before_rename_keeps_original(tmp_path, fast_settings, make_job, monkeypatch):
    path = tmp_path / 'qa-jobs.xlsx'
    assert append_records([make_job('Stable')], path, fast_settings)

    def broken_replace(src, dst):
        raise PermissionError("file locked")

    monkeypatch.setattr(workbook.os, 'replace', broken_replace)
    assert append_records([make_job('Lost')], path, fast_settings) is False
    monkeypatch.undo()
    # original still fully readable, batch dropped, no temp left behind
    assert [r.title for r in read_records(path)] == ['Stable']
    assert not temp_path_for(path).exists()


def test_rename_retries_then_succeeds(tmp_path, monkeypatch):
    src = tmp_path / 'a.tmp'
    dst = tmp_path / 'a.xlsx'
    src.write_text('data', encoding='utf-8')
    calls = []
    real_replace = os.replace

    def flaky(s, d):
        calls.append(1)
        if len(calls) < 3:
            raise OSError("busy")
        real_replace(s, d)

    monkeypatch.setattr(workbook.os, "replace", flaky)
    delays = []
    replace_with_retry(src, dst, retries=5, delay=0.1, sleep=delays.append)
    monkeypatch.undo()
    assert dst.read_text(encoding='utf-8') == 'data'
    assert len(calls) == 3
    assert delays == [0.1, 0.2]


def test_rename_exhaustion_raises(tmp_path, monkeypatch):
    src = tmp_path / 'b.tmp'
    src.write_text('x', encoding='utf-8')

    def always_fail(s, d):
        raise OSError("busy")

    monkeypatch.setattr(workbook.os, 'replace', always_fail)
    delays = []
    with pytest.raises(PersistenceError):
        replace_with_retry(src, tmp_path / 'b.xlsx', retries=3, delay=0.05, sleep=delays.append)
    assert len(delays) == 2


def test_read_missing_file_is_empty(tmp_path):
    assert read_records(tmp_path / 'nope.xlsx') == []


def test_read_headerless_sheet(tmp_path):
    path = tmp_path / 'legacy-jobs.xlsx'
    wb = Workbook()
    ws = wb.active
    ws.title = 'Jobs'
    ws.append(['Dev', 'Initech', '1-2 Yrs', 'Pune', 'https://a'])
    ws.append(['Ops', 'Initech', None, 'Pune', None])
    wb.save(path)
    recs = read_records(path)
    assert [r.title for r in recs] == ['Dev', 'Ops']
    assert recs[1].experience == 'No experience'
    assert recs[1].link == ''


def test_corrupt_file_is_not_overwritten(tmp_path, fast_settings, make_job):
    path = tmp_path / 'bad-jobs.xlsx'
    path.write_bytes(b'not a zip file')
    with pytest.raises(PersistenceError):
        read_records(path)
    assert append_records([make_job('A')], path, fast_settings) is False
    assert path.read_bytes() == b'not a zip file'


def test_control_characters_are_stripped_before_writing(tmp_path, fast_settings, make_job):
    path = tmp_path / 'devops-jobs.xlsx'
    assert write_records([make_job('Dev\x0bOps', location='Pu\x08ne')], path, fast_settings)
    rec = read_records(path)[0]
    assert rec.title == 'DevOps' and rec.location == 'Pune'


def test_unwritable_cell_value_drops_batch(tmp_path, fast_settings, make_job):
    path = tmp_path / 'devops-jobs.xlsx'
    assert write_records([make_job('Stable')], path, fast_settings)
    raw = JobRecord.model_construct(title='Bad\x08', company='', location='Pune', experience='3 years', link='')
    assert write_records([make_job('Stable'), raw], path, fast_settings) is False
    assert [r.title for r in read_records(path)] == ['Stable']
    assert not temp_path_for(path).exists()
