#!/usr/bin/env python
import pytest
from datetime import datetime
import io
import logging

import torinex as tr
from torinex import Label, RinexVersion


def make_epoch(rnx: tr.RinexData, tow: float = 100.):
    rnx.set_epoch_time(2000, tow)
    rnx.save_obs_data('E', 3, 'C1X', 25000000.)
    rnx.save_obs_data('G', 12, 'L1C', 110000000.)
    rnx.save_obs_data('G', 5, 'C1C', 23000000.)
    rnx.save_obs_data('G', 12, 'C1C', 21000000.)
    rnx.save_obs_data('G', 5, 'L1C', 120000000.)


def epoch_keys(rnx: tr.RinexData) -> list[tuple[str, int, str]]:
    return [rnx.get_obs_data(i)[:3] for i in range(len(rnx.epoch_obs))]


def test_sort():
    rnx = tr.RinexData(RinexVersion.V304)
    rnx.set_hdln_data(Label.SYS, 'G', ('C1C', 'L1C'))
    rnx.set_hdln_data(Label.SYS, 'E', ('C1X',))
    make_epoch(rnx)

    assert rnx.filter_obs_data()
    assert epoch_keys(rnx) == [('G', 5, 'C1C'), ('G', 5, 'L1C'), ('G', 12, 'C1C'), ('G', 12, 'L1C'),
                               ('E', 3, 'C1X')]

    # already filtered and sorted data are unchanged
    assert rnx.filter_obs_data()
    assert epoch_keys(rnx)[0] == ('G', 5, 'C1C')
    assert len(rnx.epoch_obs) == 5


def test_select():
    rnx = tr.RinexData(RinexVersion.V304)

    assert rnx.set_filter('G05', 'C1C')
    assert rnx.is_sat_selected('G', 5)
    assert not rnx.is_sat_selected('G', 12)
    assert not rnx.is_sat_selected('R', 3)

    make_epoch(rnx)
    assert rnx.filter_obs_data()
    assert epoch_keys(rnx) == [('G', 5, 'C1C')]

    f = io.StringIO()
    assert rnx.print_obs_epoch(f)
    assert f.getvalue().splitlines()[1:] == ['G05  23000000.000']


@pytest.mark.parametrize('sats, obs, keys',
                         [('G', (), [('G', 5, 'C1C'), ('G', 5, 'L1C'), ('G', 12, 'C1C'), ('G', 12, 'L1C')]),
                          ('G12,E', 'GL1C C1X', [('G', 12, 'L1C'), ('E', 3, 'C1X')]),
                          ((), ['C1'], [('G', 5, 'C1C'), ('G', 12, 'C1C')])])
def test_selections(sats, obs, keys):
    rnx = tr.RinexData(RinexVersion.V304)
    rnx.set_hdln_data(Label.SYS, 'G', ('C1C', 'L1C'))
    rnx.set_hdln_data(Label.SYS, 'E', ('C1X',))

    assert rnx.set_filter(sats, obs)
    make_epoch(rnx)
    assert rnx.filter_obs_data()
    assert epoch_keys(rnx) == keys


@pytest.mark.parametrize('sats, obs', [('X01', ()), ('G100', ()), ((), 'C9'), ((), 'GC1CX'), ((), 'XC1C')])
def test_bad_filter(sats, obs, caplog):
    rnx = tr.RinexData(RinexVersion.V304)
    assert rnx.set_filter('G05')

    with caplog.at_level(logging.ERROR, logger='torinex'):
        assert not rnx.set_filter(sats, obs)

    assert 'Filter not set' in caplog.text
    # previous filter is kept
    assert rnx.is_sat_selected('G', 5)
    assert not rnx.is_sat_selected('G', 6)


def test_filter_reset():
    """a new filter replaces the previous one, an empty one selects everything again"""
    rnx = tr.RinexData(RinexVersion.V304)
    rnx.set_hdln_data(Label.SYS, 'G', ('C1C', 'L1C'))
    rnx.set_hdln_data(Label.SYS, 'E', ('C1X',))

    assert rnx.set_filter('E', 'C1X')
    assert not rnx.is_sat_selected('G', 5)
    make_epoch(rnx)
    assert rnx.filter_obs_data()
    assert epoch_keys(rnx) == [('E', 3, 'C1X')]

    assert rnx.set_filter()
    assert rnx.is_sat_selected('G', 5)
    make_epoch(rnx)
    assert rnx.filter_obs_data()
    assert len(rnx.epoch_obs) == 5

    assert rnx.set_filter('G12', 'L1C')
    assert rnx.set_filter((), 'C1C')
    assert rnx.is_sat_selected('G', 5)
    make_epoch(rnx)
    assert rnx.filter_obs_data()
    assert epoch_keys(rnx) == [('G', 5, 'C1C'), ('G', 12, 'C1C')]


def test_filter_twice():
    """filtering again with the same filter keeps the same records"""
    rnx = tr.RinexData(RinexVersion.V210)
    assert rnx.set_filter('G05,G12', 'C1C C2W L1C')

    rnx.set_epoch_time(2000, 100.)
    for prn in (5, 12, 20):
        rnx.save_obs_data('G', prn, 'C1C', 21000000. + prn)
        rnx.save_obs_data('G', prn, 'C2W', 21000003. + prn)
        rnx.save_obs_data('G', prn, 'L1C', 110000000. + prn)
        rnx.save_obs_data('G', prn, 'S1C', 40.)
    rnx.save_obs_data('R', 3, 'C1C', 19500000.)

    assert rnx.filter_obs_data(remove_not_printable=True)
    once = epoch_keys(rnx)
    assert once == [('G', 5, 'C1C'), ('G', 5, 'L1C'), ('G', 12, 'C1C'), ('G', 12, 'L1C')]

    assert rnx.set_filter('G05,G12', 'C1C C2W L1C')
    assert rnx.filter_obs_data(remove_not_printable=True)
    assert epoch_keys(rnx) == once


def test_time_window():
    rnx = tr.RinexData(RinexVersion.V304)

    assert not rnx.set_filter(tstart=datetime(2018, 5, 6, 1), tend=datetime(2018, 5, 6))
    assert rnx.set_filter(tstart=datetime(2018, 5, 6, 0, 1), tend=datetime(2018, 5, 6, 0, 2))

    make_epoch(rnx, 100.)
    assert rnx.filter_obs_data()
    make_epoch(rnx, 200.)
    assert not rnx.filter_obs_data()
    assert not rnx.epoch_obs


def test_event_passes():
    rnx = tr.RinexData(RinexVersion.V304)
    rnx.set_filter('R')

    rnx.set_epoch_time(2000, 100., flag=2)
    assert rnx.filter_obs_data()

    make_epoch(rnx)
    assert not rnx.filter_obs_data()


def test_not_printable():
    rnx = tr.RinexData(RinexVersion.V210)
    rnx.set_epoch_time(2000, 100.)
    rnx.save_obs_data('G', 5, 'C1C', 23000000.)
    rnx.save_obs_data('G', 5, 'C2W', 23000001.)

    assert rnx.filter_obs_data()
    assert len(rnx.epoch_obs) == 2
    assert rnx.filter_obs_data(remove_not_printable=True)
    assert epoch_keys(rnx) == [('G', 5, 'C1C')]


def test_save_checks(caplog):
    rnx = tr.RinexData(RinexVersion.V304)
    rnx.set_epoch_time(2000, 100.)

    with caplog.at_level(logging.ERROR, logger='torinex'):
        assert not rnx.save_obs_data('G', 5, 'C1C', 1e12)
        assert not rnx.save_obs_data('G', 5, 'C1C', -1e10)
        assert not rnx.save_obs_data('X', 5, 'C1C', 1.)
        assert not rnx.save_obs_data('G', 5, 'C9', 1.)
        assert not rnx.save_obs_data('G', 5, 'C1CX', 1.)

    assert 'out of range' in caplog.text
    assert not rnx.epoch_obs
    assert not rnx.systems


def test_time_tag():
    rnx = tr.RinexData(RinexVersion.V304)

    rnx.save_obs_data('G', 5, 'C1C', 23000000., time_tag=1.)
    rnx.save_obs_data('G', 6, 'C1C', 23000000., time_tag=1.)
    assert len(rnx.epoch_obs) == 2

    rnx.save_obs_data('G', 5, 'C1C', 23000100., time_tag=2.)
    assert len(rnx.epoch_obs) == 1

    rnx.clear_obs_data()
    assert rnx.get_obs_data(0) is None


def test_new_codes():
    """systems and observable types are added as data arrive"""
    rnx = tr.RinexData(RinexVersion.V304)
    rnx.set_epoch_time(2000, 100.)
    rnx.save_obs_data('C', 8, 'C2I', 38000000.)
    rnx.save_obs_data('G', 5, 'C5Q', 23000000.)
    rnx.save_obs_data('G', 5, 'C1C', 23000000.)

    recs = rnx.get_hdln_records(Label.SYS)
    assert [(r.system, r.types) for r in recs] == [('C', ('C2I',)), ('G', ('C1C', 'C5Q'))]


if __name__ == '__main__':
    pytest.main([__file__])
