#!/usr/bin/env python
import pytest
from pathlib import Path
import torinex as tr
import io
import gzip
import zipfile
from datetime import datetime

R = Path(__file__).parent / 'data'


@pytest.mark.parametrize('fn, t', [('minimal2.10n', datetime(2018, 7, 29, 1, 59, 44)),
                                   ('minimal3.04n', datetime(2018, 7, 29, 1, 45))])
def test_nav(fn, t):
    fn = R / fn
    txt = fn.read_text()

    with io.StringIO(txt) as f:
        info = tr.rinexinfo(f)
        assert info['rinextype'] == 'nav'

        times = tr.gettime(f)
        nav = tr.load(f)

    assert times[0] == t

    assert nav.equals(tr.load(fn)), 'StringIO not matching direct file read'


@pytest.mark.parametrize('fn', ['minimal2.10o', 'minimal3.04o'])
def test_obs(fn):
    fn = R / fn
    txt = fn.read_text()

    with io.StringIO(txt) as f:
        info = tr.rinexinfo(f)
        assert info['rinextype'] == 'obs'

        times = tr.gettime(f)
        obs = tr.load(f)

    assert times.size == 2

    assert obs.equals(tr.load(fn)), 'StringIO not matching direct file read'


def test_compressed(tmp_path):
    fn = R / 'minimal3.04o'
    txt = fn.read_text()

    gz = tmp_path / 'minimal3.04o.gz'
    with gzip.open(gz, 'wt') as f:
        f.write(txt)

    zp = tmp_path / 'minimal3.04o.zip'
    with zipfile.ZipFile(zp, 'w') as z:
        z.writestr('minimal3.04o', txt)

    ref = tr.load(fn)
    assert tr.rinexinfo(gz)['version'] == pytest.approx(3.04)
    assert tr.load(gz).equals(ref)
    assert tr.load(zp).equals(ref)


def test_version_line():
    with pytest.raises(TypeError):
        tr.rinex_version(None)

    with pytest.raises(ValueError):
        tr.rinex_version('     4.00           OBSERVATION DATA    M')

    assert tr.rinex_version('     3.04           OBSERVATION DATA    M') == pytest.approx(3.04)


if __name__ == '__main__':
    pytest.main(['-x', __file__])
