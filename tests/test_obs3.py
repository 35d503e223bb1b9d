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

R = Path(__file__).parent / 'data'


def read_all(rnx: tr.RinexData, f) -> list:
    """status and observations of every epoch"""
    epochs = []
    while True:
        status = rnx.read_obs_epoch(f)
        if status == EpochStatus.EOF:
            break
        epochs.append((status, [rnx.get_obs_data(i) for i in range(len(rnx.epoch_obs))]))
    return epochs


def test_print_epoch():
    rnx = tr.RinexData(RinexVersion.V304)

    assert rnx.set_epoch_time(2000, 100.) == approx(2000 * 604800 + 100)
    assert rnx.save_obs_data('G', 5, 'C1C', 23000000.123, 0, 7)

    f = io.StringIO()
    assert rnx.print_obs_epoch(f)
    assert f.getvalue() == '> 2018 05 06 00 01 40.0000000  0  1\nG05  23000000.123 7\n'


def test_print_clock_bias():
    rnx = tr.RinexData(RinexVersion.V304)
    rnx.set_epoch_time(2000, 100., 0.000123456789)
    rnx.save_obs_data('E', 11, 'C1X', 25000000.)

    f = io.StringIO()
    rnx.print_obs_epoch(f)
    first = f.getvalue().splitlines()[0]
    assert first == '> 2018 05 06 00 01 40.0000000  0  1       0.000123456789'


def test_epoch_time():
    rnx = tr.RinexData()
    rnx.set_epoch_time(2000, 100.5, 1e-4, 1)

    assert rnx.get_epoch_time() == (2000, 100.5, 1e-4, 1)


def test_read():
    rnx = tr.RinexData(RinexVersion.V304)
    with (R/'minimal3.04o').open() as f:
        assert rnx.read_rinex_header(f) == Label.EOH
        assert rnx.get_hdln_data(Label.INFILEVER) == RinexVersion.V304

        assert rnx.read_obs_epoch(f) == EpochStatus.OK
        assert rnx.get_epoch_time() == (2000, 100., 0., 0)
        assert len(rnx.epoch_obs) == 4 + 3 + 2

        d = rnx.get_obs_data(0)
        assert d == ('G', 5, 'C1C', approx(23000000.123), 0, 7)
        d = rnx.get_obs_data(1)
        assert (d.obs_type, d.lli, d.ssi) == ('L1C', 1, 7)
        d = rnx.get_obs_data(3)
        assert d.obs_type == 'C2W'
        assert d.value == approx(23000005.789)
        assert rnx.get_obs_data(9) is None

        assert rnx.read_obs_epoch(f) == EpochStatus.OK
        assert rnx.get_epoch_time()[1] == approx(130.)
        assert len(rnx.epoch_obs) == 4 + 1 + 1

        assert rnx.read_obs_epoch(f) == EpochStatus.EOF


def test_round_trip():
    """reading a file and printing it back gives the same file"""
    fn = R/'minimal3.04o'
    rnx = tr.RinexData(RinexVersion.V304)

    out = io.StringIO()
    with fn.open() as f:
        assert rnx.read_rinex_header(f) == Label.EOH
        assert rnx.print_obs_header(out)
        while rnx.read_obs_epoch(f) != EpochStatus.EOF:
            assert rnx.print_obs_epoch(out)

    assert [ln.rstrip() for ln in out.getvalue().splitlines()] == fn.read_text().splitlines()


def test_written_file():
    rnx = tr.RinexData(RinexVersion.V304, 'prog')
    rnx.set_hdln_data(Label.MRKNAME, 'TEST')
    rnx.set_hdln_data(Label.AGENCY, 'observer', 'agency')
    rnx.set_hdln_data(Label.RECEIVER, '1', 'RX', '1.0')
    rnx.set_hdln_data(Label.ANTTYPE, '2', 'ANT')
    rnx.set_hdln_data(Label.APPXYZ, 4789028.4701, 176610.0133, 4195017.031)
    rnx.set_hdln_data(Label.ANTHEN, 0., 0., 0.)
    rnx.set_hdln_data(Label.TOFO, 2000, 100.)
    rnx.set_hdln_data(Label.SYS, 'G', ('C1C', 'L1C'))
    rnx.set_hdln_data(Label.SYS, 'E', ('C1X',))

    f = io.StringIO()
    assert rnx.print_obs_header(f)
    for k in range(3):
        rnx.set_epoch_time(2000, 100. + 30 * k)
        rnx.save_obs_data('E', 11, 'C1X', 25000000. + k)
        rnx.save_obs_data('G', 12, 'L1C', 110000000.25 + k, 1)
        rnx.save_obs_data('G', 12, 'C1C', 21000000.5 + k)
        assert rnx.filter_obs_data()
        assert rnx.print_obs_epoch(f)
    rnx.print_obs_eof(f)

    txt = f.getvalue()
    assert txt.splitlines()[-2] == '>                              4  1'
    assert txt.splitlines()[-1].startswith('END OF FILE')

    back = tr.RinexData(RinexVersion.V304)
    f.seek(0)
    assert back.read_rinex_header(f) == Label.EOH
    assert back.get_hdln_data(Label.MRKNAME).value == 'TEST'
    assert [s.system for s in back.systems] == ['G', 'E']

    epochs = read_all(back, f)
    assert [s for s, _ in epochs] == [EpochStatus.OK] * 4
    for k, (_, obs) in enumerate(epochs[:3]):
        assert [(d.system, d.satellite, d.obs_type) for d in obs] == \
            [('G', 12, 'C1C'), ('G', 12, 'L1C'), ('E', 11, 'C1X')]
        assert obs[1].value == approx(110000000.25 + k)
        assert obs[1].lli == 1
    # end of file event
    assert back.epoch_flag == 4
    assert not back.epoch_has_date
    assert back.get_hdln_data(Label.COMM).text == 'END OF FILE'


def test_events():
    txt = (R/'minimal3.04o').read_text()
    head, body = txt.split('END OF HEADER\n')
    event = ('> 2018 05 06 00 01 50.0000000  3  2\n'
             + f"{'SITE2':<60}MARKER NAME\n"
             + f"{'new site':<60}COMMENT\n"
             + '>                              2  1\n'
             + f"{'moving':<60}COMMENT\n")
    body = body.split('> 2018 05 06 00 02')
    txt = head + 'END OF HEADER\n' + body[0] + event + '> 2018 05 06 00 02' + body[1]

    rnx = tr.RinexData(RinexVersion.V304)
    with io.StringIO(txt) as f:
        assert rnx.read_rinex_header(f) == Label.EOH
        epochs = read_all(rnx, f)

    assert [s for s, _ in epochs] == [EpochStatus.OK] * 4
    assert len(epochs[3][1]) == 6
    # the header-information event replaced the stored header
    assert rnx.get_hdln_data(Label.MRKNAME) is None
    assert rnx.get_hdln_data(Label.COMM).text == 'moving'


def test_new_site_without_marker():
    txt = (R/'minimal3.04o').read_text()
    txt += '> 2018 05 06 00 03 00.0000000  3  1\n' + f"{'no marker':<60}COMMENT\n"

    rnx = tr.RinexData(RinexVersion.V304)
    with io.StringIO(txt) as f:
        rnx.read_rinex_header(f)
        epochs = read_all(rnx, f)

    assert [s for s, _ in epochs] == [EpochStatus.OK, EpochStatus.OK, EpochStatus.ERROR]


@pytest.mark.parametrize('records', [f"{'one comment only':<60}COMMENT\n",
                                     'no label on this line\n' + f"{'second':<60}COMMENT\n"])
def test_event_record_count(records, caplog):
    """an event declaring more special records than it holds fails, the next epoch is still read"""
    head, body = (R/'minimal3.04o').read_text().split('END OF HEADER\n')
    txt = head + 'END OF HEADER\n' + '>                              4  2\n' + records + body

    rnx = tr.RinexData(RinexVersion.V304)
    with caplog.at_level(logging.ERROR, logger='torinex'):
        with io.StringIO(txt) as f:
            rnx.read_rinex_header(f)
            epochs = read_all(rnx, f)

    assert 'Header information event: error in special records' in caplog.text
    assert [s for s, _ in epochs] == [EpochStatus.ERROR, EpochStatus.OK, EpochStatus.OK]
    assert len(epochs[1][1]) == 9


def test_bad_lines():
    txt = (R/'minimal3.04o').read_text()
    lines = txt.splitlines()
    i = lines.index('G12  21000000.500 6 110357000.250 6        38.000')
    lines[i] += '  23000005.789    1.000'

    rnx = tr.RinexData(RinexVersion.V304)
    with io.StringIO('\n'.join(lines) + '\n') as f:
        rnx.read_rinex_header(f)
        epochs = read_all(rnx, f)

    assert [s for s, _ in epochs] == [EpochStatus.ERROR, EpochStatus.OK]
    assert epochs[0][1] == []


def test_undeclared_system():
    txt = (R/'minimal3.04o').read_text().replace('R03  19501000.750', 'E03  19501000.750')

    rnx = tr.RinexData(RinexVersion.V304)
    with io.StringIO(txt) as f:
        rnx.read_rinex_header(f)
        epochs = read_all(rnx, f)

    assert epochs[1][0] == EpochStatus.OK
    assert {d.system for d in epochs[1][1]} == {'G'}


@pytest.mark.parametrize('use, meas, svs, codes',
                         [(None, None, ['G05', 'G12', 'R03'], ['C1C', 'L1C', 'S1C', 'C2W']),
                          ('G', None, ['G05', 'G12'], ['C1C', 'L1C', 'S1C', 'C2W']),
                          (None, 'C1C', ['G05', 'G12', 'R03'], ['C1C']),
                          (['G05', 'R03'], ['GL1C', 'C1C'], ['G05', 'R03'], ['C1C', 'L1C'])])
def test_load(use, meas, svs, codes):
    obs = tr.load(R/'minimal3.04o', use=use, meas=meas)

    assert obs.sv.values.tolist() == svs
    assert sorted(obs.data_vars) == sorted(codes)
    assert obs.time.size == 2
    assert obs.attrs['rinextype'] == 'obs'
    assert obs.attrs['version'] == approx(3.04)


def test_load_values():
    obs = tr.load(R/'minimal3.04o', useindicators=True)

    assert obs['C1C'].sel(sv='G05').values == approx([23000000.123, 23001000.123])
    assert np.isnan(obs['C2W'].sel(sv='G12').values).all()
    assert obs['L1Clli'].sel(sv='G05').values[0] == 1
    assert np.isnan(obs['L1Clli'].sel(sv='G05').values[1])
    assert obs['C1Cssi'].sel(sv='G12').values == approx([6, 6])
    assert obs.attrs['position'] == approx([4789028.4701, 176610.0133, 4195017.031])
    assert obs.attrs['interval'] == approx(30.)


def test_gettime():
    times = tr.gettime(R/'minimal3.04o')

    assert times.tolist() == [datetime(2018, 5, 6, 0, 1, 40), datetime(2018, 5, 6, 0, 2, 10)]


if __name__ == '__main__':
    pytest.main([__file__])
