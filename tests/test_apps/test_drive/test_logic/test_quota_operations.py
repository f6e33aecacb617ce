"""Tests for quota operations business logic."""

import pytest

from server.apps.drive.logic.quota_operations import (
    QuotaAdmission,
    QuotaRejection,
    admit,
    get_usage_report,
    quota_mb_to_bytes,
    usage_percentage,
)

MB = 1024 * 1024


def test_admit_passes_when_space_available():
    """Test admission when the batch fits."""
    decision = admit(400, 1000, [500])

    assert decision == QuotaAdmission(new_usage=900, percent_used=90)


def test_admit_passes_at_exact_limit():
    """Test filling the quota exactly is allowed."""
    decision = admit(400, 1000, [300, 300])

    assert isinstance(decision, QuotaAdmission)
    assert decision.new_usage == 1000
    assert decision.percent_used == 100


def test_admit_rejects_one_byte_over():
    """Test one byte over the quota is rejected."""
    decision = admit(400, 1000, [601])

    assert isinstance(decision, QuotaRejection)
    assert decision.over_by == 1


@pytest.mark.parametrize(('usage', 'incoming', 'admitted'), [
    (0, [0], True),
    (0, [1000], True),
    (999, [1], True),
    (1000, [], True),
    (1000, [1], False),
    (0, [500, 501], False),
    (1500, [0], False),
])
def test_admit_boundary(usage, incoming, admitted):
    """Test admission iff usage plus incoming is within quota."""
    decision = admit(usage, 1000, incoming)

    assert isinstance(decision, QuotaAdmission) is admitted


def test_admit_unlimited_quota():
    """Test quota of 0 admits anything and reports 0 percent."""
    decision = admit(5 * MB, 0, [100 * MB])

    assert decision == QuotaAdmission(new_usage=105 * MB, percent_used=0)


def test_rejection_details():
    """Test rejection carries the numbers for the message."""
    decision = admit(9 * MB, 10 * MB, [2 * MB])

    assert decision == QuotaRejection(
        quota_bytes=10 * MB,
        used_bytes=9 * MB,
        needed_bytes=2 * MB,
        over_by=MB,
    )
    assert decision.over_by == 1048576
    assert decision.available_bytes == MB


def test_rejection_message():
    """Test rejection message format."""
    decision = admit(9 * MB, 10 * MB, [2 * MB])

    assert decision.message == (
        'Quota exceeded. You have 1.00 MB available, need 2.00 MB'
    )


def test_rejection_available_never_negative():
    """Test usage already over quota reports nothing available."""
    decision = admit(12 * MB, 10 * MB, [1])

    assert decision.available_bytes == 0
    assert 'You have 0 Bytes available' in decision.message


def test_scenario_two_files_admitted():
    """Test 3 MB and 4 MB into an empty 10 MB quota."""
    decision = admit(0, 10 * MB, [3 * MB, 4 * MB])

    assert decision.new_usage == 7 * MB
    assert decision.percent_used == 70


def test_usage_percentage_capped():
    """Test percentage never exceeds 100."""
    assert usage_percentage(200, 100) == 100
    assert usage_percentage(50, 100) == 50
    assert usage_percentage(50, 0) == 0


def test_quota_mb_to_bytes():
    """Test quota conversion uses 1024 * 1024 bytes per MB."""
    assert quota_mb_to_bytes(10) == 10 * MB
    assert quota_mb_to_bytes(0) == 0


def test_usage_report(storage_context, identity, storage_root, make_file):
    """Test usage report scans the root."""
    make_file(storage_root, 'a.bin', 3 * MB)
    make_file(storage_root, 'b.bin', 2 * MB)

    report = get_usage_report(storage_context, identity, quota_mb=10)

    assert report.storage_used_bytes == 5 * MB
    assert report.storage_used_formatted == '5.00 MB'
    assert report.storage_quota_bytes == 10 * MB
    assert report.storage_quota_formatted == '10 MB'
    assert report.usage_percentage == 50


def test_usage_report_missing_root(storage_context, identity):
    """Test a brand-new identity has zero usage."""
    report = get_usage_report(storage_context, identity, quota_mb=100)

    assert report.storage_used_bytes == 0
    assert report.storage_used_formatted == '0 Bytes'
    assert report.usage_percentage == 0


def test_usage_report_reflects_out_of_band_changes(
    storage_context,
    identity,
    storage_root,
    make_file,
):
    """Test usage is never cached between reports."""
    stored = make_file(storage_root, 'a.bin', MB)
    first = get_usage_report(storage_context, identity, quota_mb=10)

    stored.unlink()
    second = get_usage_report(storage_context, identity, quota_mb=10)

    assert first.storage_used_bytes == MB
    assert second.storage_used_bytes == 0
