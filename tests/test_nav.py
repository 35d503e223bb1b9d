#!/usr/bin/env python
import pytest
from pytest import approx
from pathlib import Path
from datetime import datetime
import io
import logging
import numpy as np

import torinex as tr
from torinex import Label, RinexVersion, EpochStatus
from torinex.epoch import nav_tag_to_datetime

R = Path(__file__).parent / 'data'

G20 = [11, -74.125, 4.944134514e-09, 0.7369900150,
       -3.810971975327e-06, 4.055858473293e-03, 1.130439341068e-05, 5153.679727554,
       14384, -2.98023223877e-08, -2.942741, -5.587935447693e-08,
       0.929160319714, 144.8125, 2.063514928857, -8.198555788471e-09,
       2.935836575092e-10, 1, 2012, 0,
       2, 0, -8.381903171539e-09, 11,
       9456, 4]


def read_nav(fn: Path, version: RinexVersion) -> tuple[tr.RinexData, list[EpochStatus]]:
    rnx = tr.RinexData(version)
    statuses = []
    with fn.open() as f:
        assert rnx.read_rinex_header(f) == Label.EOH
        while True:
            statuses.append(rnx.read_nav_epoch(f))
            if statuses[-1] == EpochStatus.EOF:
                break

    return rnx, statuses


def test_read3():
    rnx, statuses = read_nav(R/'minimal3.04n', RinexVersion.V304)

    assert statuses == [EpochStatus.OK] * 3 + [EpochStatus.EOF]
    assert [(r.system, r.satellite) for r in rnx.epoch_nav] == [('G', 20), ('R', 7), ('E', 11)]

    g = rnx.get_nav_data(0)
    assert g.orbit[0, :3] == approx([5.1321554929e-04, 6.821210263e-13, 0.])
    assert g.orbit[1:].ravel()[:26] == approx(G20)
    assert nav_tag_to_datetime(g.system, g.time_tag) == datetime(2018, 7, 29, 2)

    r = rnx.get_nav_data(1)
    assert r.orbit[1, 0] == approx(-2.10544e4)
    assert r.orbit[3, 0] == approx(1.20010e4)
    assert not r.orbit[4:].any()
    assert nav_tag_to_datetime(r.system, r.time_tag) == datetime(2018, 7, 29, 1, 45)

    e = rnx.get_nav_data(2)
    assert e.orbit[7, 0] == approx(1.4e4)
    assert rnx.get_nav_data(3) is None


def test_read2():
    rnx, statuses = read_nav(R/'minimal2.10n', RinexVersion.V210)

    assert statuses == [EpochStatus.OK] * 3 + [EpochStatus.EOF]
    assert rnx.nav_system == 'G'
    assert [r.satellite for r in rnx.epoch_nav] == [20, 20, 5]

    g = rnx.get_nav_data(2)
    assert g.orbit[0, :3] == approx([-1.25e-4, -1.136868377216e-12, 0.])
    assert g.orbit[1:].ravel()[:26] == approx(G20)
    assert nav_tag_to_datetime('G', rnx.get_nav_data(0).time_tag) == datetime(2018, 7, 29, 1, 59, 44)


@pytest.mark.parametrize('fn, version', [('minimal3.04n', RinexVersion.V304),
                                         ('minimal2.10n', RinexVersion.V210)])
def test_round_trip(fn, version):
    rnx, _ = read_nav(R/fn, version)

    out = io.StringIO()
    assert rnx.print_nav_header(out)
    assert rnx.print_nav_epochs(out)

    assert [ln.rstrip() for ln in out.getvalue().splitlines()] == (R/fn).read_text().splitlines()


def test_v3_to_v2():
    rnx, _ = read_nav(R/'minimal3.04n', RinexVersion.V210)
    assert rnx.filter_nav_data()

    out = io.StringIO()
    assert rnx.print_nav_header(out)
    assert rnx.print_nav_epochs(out)
    lines = out.getvalue().splitlines()

    assert lines[0].startswith('     2.10           N: GPS NAV DATA')
    labels = [ln[60:].strip() for ln in lines]
    assert 'ION ALPHA' in labels
    assert 'IONOSPHERIC CORR' not in labels
    i = labels.index('END OF HEADER')
    # only the GPS record fits a V2 GPS navigation file
    assert len(lines) == i + 1 + 8
    assert lines[i + 1] == '20 18  7 29  2  0  0.0 5.132155492900D-04 6.821210263000D-13 0.000000000000D+00'


def test_save_nav():
    rnx = tr.RinexData(RinexVersion.V304)
    tag = 2000 * 604800 + 7200.

    assert rnx.save_nav_data('G', 5, [[1e-4, 0, 0, 0], G20[:4]], tag)
    assert not rnx.save_nav_data('G', 5, [[2e-4, 0, 0]], tag)
    assert not rnx.save_nav_data('X', 5, [[2e-4, 0, 0]], tag)
    assert not rnx.save_nav_data('G', 6, np.zeros((9, 4)), tag)
    assert rnx.save_nav_data('E', 1, [[1e-4, 0, 0]], tag)
    assert rnx.save_nav_data('G', 2, [[1e-4, 0, 0]], tag - 10)
    assert rnx.has_nav_epochs()
    assert rnx.has_nav_epochs('E')
    assert not rnx.has_nav_epochs('R')

    assert rnx.filter_nav_data()
    assert [(r.system, r.satellite) for r in rnx.epoch_nav] == [('G', 2), ('E', 1), ('G', 5)]

    rnx.clear_nav_data()
    assert not rnx.has_nav_epochs()


def test_short_record(caplog):
    with caplog.at_level(logging.ERROR, logger='torinex'):
        rnx, statuses = read_nav(R/'short3.04n', RinexVersion.V304)

    assert statuses == [EpochStatus.ERROR, EpochStatus.EOF]
    assert not rnx.has_nav_epochs()
    assert 'less than expected' in caplog.text


@pytest.mark.parametrize('fn, version, last, kept',
                         [('minimal3.04n', RinexVersion.V304, '     9.456000000000E+03 4.000000000000E+00\n',
                           [('R', 7), ('E', 11)]),
                          ('minimal2.10n', RinexVersion.V210, '    9.456000000000D+03 4.000000000000D+00\n',
                           [('G', 20), ('G', 5)])])
def test_short_record_mid_file(fn, version, last, kept, tmp_path):
    """a record missing its last line does not take the next record with it"""
    txt = (R/fn).read_text().replace(last, '', 1)
    short = tmp_path / fn
    short.write_text(txt)

    rnx, statuses = read_nav(short, version)

    assert statuses == [EpochStatus.ERROR, EpochStatus.OK, EpochStatus.OK, EpochStatus.EOF]
    assert [(r.system, r.satellite) for r in rnx.epoch_nav] == kept


@pytest.mark.parametrize('fn, times',
                         [('minimal3.04n', [datetime(2018, 7, 29, 1, 45), datetime(2018, 7, 29, 2),
                                            datetime(2018, 7, 29, 2, 10)]),
                          ('minimal2.10n', [datetime(2018, 7, 29, 1, 59, 44), datetime(2018, 7, 29, 2),
                                            datetime(2018, 7, 29, 3, 59, 44)])])
def test_gettime(fn, times):
    assert tr.gettime(R/fn).tolist() == times


def test_load3():
    nav = tr.load(R/'minimal3.04n')

    assert nav.sv.values.tolist() == ['E11', 'G20', 'R07']
    assert nav.time.size == 3
    assert nav.attrs['svtype'] == ['E', 'G', 'R']
    assert nav.attrs['rinextype'] == 'nav'
    assert nav.attrs['ionospheric_corr_GPS'] == approx([1.676e-8, 2.235e-8, -1.192e-7, -1.192e-7,
                                                        114700, 147500, -131100, -458800])
    assert nav.attrs['ionospheric_corr_GAL'] == approx([40.25, 0.27344, 0.0036926])

    g20 = nav.sel(sv='G20').dropna(dim='time', how='all')
    assert g20.time.size == 1
    assert g20['SVclockBias'].item() == approx(5.1321554929e-4)
    assert g20['sqrtA'].item() == approx(5153.679727554)
    assert g20['FitIntvl'].item() == approx(4)

    r07 = nav.sel(sv='R07').dropna(dim='time', how='all')
    assert r07['X'].item() == approx(-2.10544e7)
    assert r07['FreqNum'].item() == approx(-4)

    e11 = nav.sel(sv='E11').dropna(dim='time', how='all')
    assert e11['TransTime'].item() == approx(1.4e4)
    assert np.isnan(e11['X'].item())


def test_load2():
    nav = tr.load(R/'minimal2.10n')

    assert nav.sv.values.tolist() == ['G05', 'G20']
    assert nav.attrs['version'] == approx(2.1)
    assert nav.attrs['ionospheric_corr_GPS'][4:] == approx([114700, 147500, -131100, -458800])

    clk = nav['SVclockBias'].sel(sv='G20').values
    assert clk[0] == approx(5.1321554929e-4)
    assert np.isnan(clk[1])
    assert clk[2] == approx(5.132199e-4)


def test_load_use():
    nav = tr.load(R/'minimal3.04n', use='E')
    assert nav.sv.values.tolist() == ['E11']

    nav = tr.load(R/'minimal3.04n', tlim=('2018-07-29T01:50', '2018-07-29T02:05'))
    assert nav.sv.values.tolist() == ['G20']


if __name__ == '__main__':
    pytest.main([__file__])
