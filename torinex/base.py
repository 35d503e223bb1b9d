from __future__ import annotations
from pathlib import Path
import typing as T
from datetime import datetime
import io
import logging

import numpy as np
import xarray

from .rio import rinexinfo, opener
from .labels import Label, RinexVersion
from .header import ProgramRunBy
from .rinexdata import RinexData
from .epoch import EpochStatus, nav_layout, nav_tag_to_datetime
from .common import gps_to_datetime
from .utils import reader, _tlim

# for NetCDF compression. too high slows down with little space savings.
ENC = {'zlib': True, 'complevel': 1, 'fletcher32': True}

_KEPLER = ['SVclockBias', 'SVclockDrift', 'SVclockDriftRate',
           'IODE', 'Crs', 'DeltaN', 'M0',
           'Cuc', 'Eccentricity', 'Cus', 'sqrtA',
           'Toe', 'Cic', 'Omega0', 'Cis',
           'Io', 'Crc', 'omega', 'OmegaDot',
           'IDOT', 'CodesL2', 'GPSWeek', 'L2Pflag',
           'SVacc', 'health', 'TGD', 'IODC',
           'TransTime', 'FitIntvl']


_GLONASS = ['SVclockBias', 'SVrelFreqBias', 'MessageFrameTime',
            'X', 'dX', 'dX2', 'health',
            'Y', 'dY', 'dY2', 'FreqNum',
            'Z', 'dZ', 'dZ2', 'AgeOpInfo']


NAV_FIELDS = {
    'G': _KEPLER,
    'J': _KEPLER,
    'C': ['SVclockBias', 'SVclockDrift', 'SVclockDriftRate',
          'AODE', 'Crs', 'DeltaN', 'M0',
          'Cuc', 'Eccentricity', 'Cus', 'sqrtA',
          'Toe', 'Cic', 'Omega0', 'Cis',
          'Io', 'Crc', 'omega', 'OmegaDot',
          'IDOT', 'spare0', 'BDTWeek', 'spare1',
          'SVacc', 'SatH1', 'TGD1', 'TGD2',
          'TransTime', 'AODC'],
    'E': ['SVclockBias', 'SVclockDrift', 'SVclockDriftRate',
          'IODnav', 'Crs', 'DeltaN', 'M0',
          'Cuc', 'Eccentricity', 'Cus', 'sqrtA',
          'Toe', 'Cic', 'Omega0', 'Cis',
          'Io', 'Crc', 'omega', 'OmegaDot',
          'IDOT', 'DataSrc', 'GALWeek', 'spare0',
          'SISA', 'health', 'BGDe5a', 'BGDe5b',
          'TransTime'],
    'I': ['SVclockBias', 'SVclockDrift', 'SVclockDriftRate',
          'IODEC', 'Crs', 'DeltaN', 'M0',
          'Cuc', 'Eccentricity', 'Cus', 'sqrtA',
          'Toe', 'Cic', 'Omega0', 'Cis',
          'Io', 'Crc', 'omega', 'OmegaDot',
          'IDOT', 'spare0', 'BDTWeek', 'spare1',
          'URA', 'health', 'TGD', 'spare2',
          'TransTime', 'spare3'],
    'R': _GLONASS,
    'S': _GLONASS[:10] + ['URA'] + _GLONASS[11:14] + ['IODN'],
}

_KM_FIELDS = ('X', 'dX', 'dX2', 'Y', 'dY', 'dY2', 'Z', 'dZ', 'dZ2')


def load(rinexfn: T.TextIO | str | Path,
         out: Path | None = None,
         use: T.Sequence[str] | None = None,
         tlim: tuple[datetime, datetime] | None = None,
         useindicators: bool = False,
         meas: T.Sequence[str] | None = None,
         verbose: bool = False) -> xarray.Dataset | dict[str, xarray.Dataset]:
    """
    Reads OBS, NAV in RINEX 2.10 and 3.04

    Files / StringIO input may be plain ASCII text, gzip or zip compressed.
    NetCDF files previously written by load() are read back.
    """
    if verbose:
        logging.basicConfig(level=logging.INFO)

    if isinstance(rinexfn, (str, Path)):
        rinexfn = Path(rinexfn).expanduser()
# %% determine if/where to write NetCDF4/HDF5 output
    outfn = None
    if out:
        out = Path(out).expanduser()
        if out.is_dir():
            outfn = out / (rinexfn.name + '.nc')  # not with_suffix to keep unique RINEX 2 filenames
        elif out.suffix == '.nc':
            outfn = out
        else:
            raise ValueError(f'not sure what output is wanted: {out}')
# %% main program
    if isinstance(rinexfn, Path) and rinexfn.suffix == '.nc':
        # outfn not used here, because we already have the converted file!
        try:
            nav = rinexnav(rinexfn)
        except LookupError:
            nav = None

        try:
            obs = rinexobs(rinexfn)
        except LookupError:
            obs = None

        if nav is not None and obs is not None:
            return {'nav': nav, 'obs': obs}
        elif nav is not None:
            return nav
        elif obs is not None:
            return obs
        else:
            raise ValueError(f'No data of known format found in {rinexfn}')

    info = rinexinfo(rinexfn)

    if info['rinextype'] == 'nav':
        return rinexnav(rinexfn, outfn, use=use, tlim=tlim)
    elif info['rinextype'] == 'obs':
        return rinexobs(rinexfn, outfn, use=use, tlim=tlim,
                        useindicators=useindicators, meas=meas)
    else:
        raise ValueError(f'What kind of RINEX file is: {rinexfn}')


def _reader(fn: T.TextIO | Path, use: T.Sequence[str] | None, meas: T.Sequence[str] | None,
            tlim: tuple[datetime, datetime] | None,
            version: RinexVersion | None = None) -> RinexData:
    rnx = reader(fn) if version is None else RinexData(version)
    if not rnx.set_filter(use or (), meas or (), *(tlim or (None, None))):
        raise ValueError(f'unknown satellite or observable selection: {use} {meas}')
    return rnx


def _read_header(rnx: RinexData, f: T.TextIO, fn: T.TextIO | Path) -> None:
    if rnx.read_rinex_header(f) != Label.EOH:
        raise ValueError(f'RINEX header not readable in {fn}')


def rinexnav(fn: T.TextIO | str | Path,
             outfn: Path | None = None,
             use: T.Sequence[str] | None = None,
             group: str = 'NAV',
             tlim: tuple[datetime, datetime] | None = None) -> xarray.Dataset:
    """ Read RINEX 2 or 3  NAV files"""

    if isinstance(fn, (str, Path)):
        fn = Path(fn).expanduser()

        if fn.suffix == '.nc':
            try:
                return xarray.open_dataset(fn, group=group)
            except OSError as e:
                raise LookupError(f'Group {group} not found in {fn}    {e}')

    tlim = _tlim(tlim)

    info = rinexinfo(fn)
    if info['rinextype'] != 'nav':
        raise LookupError(f'not a NAV file  {info}  {fn}')

    rnx = _reader(fn, use, None, tlim)
    with opener(fn) as f:
        _read_header(rnx, f, fn)
        while rnx.read_nav_epoch(f) != EpochStatus.EOF:
            pass
    rnx.filter_nav_data()

    nav = _nav_dataset(rnx)
# %% other attributes
    iono = rnx.get_hdln_records(Label.IONC_GPSA) + rnx.get_hdln_records(Label.IONC_GPSB)
    if len(iono) == 2:
        nav.attrs['ionospheric_corr_GPS'] = np.hstack([c.params[:4] for c in iono])
    gal = rnx.get_hdln_records(Label.IONC_GAL)
    if gal:
        nav.attrs['ionospheric_corr_GAL'] = np.asarray(gal[0].params[:3])

    nav.attrs['version'] = info['version']
    nav.attrs['svtype'] = sorted({r.system for r in rnx.epoch_nav})
    nav.attrs['rinextype'] = 'nav'
    if isinstance(fn, Path):
        nav.attrs['filename'] = fn.name
# %% optional output write
    if outfn:
        outfn = Path(outfn).expanduser()
        wmode = _groupexists(outfn, group)

        enc = {k: ENC for k in nav.data_vars}
        nav.to_netcdf(outfn, group=group, mode=wmode, encoding=enc)

    return nav


def _nav_dataset(rnx: RinexData) -> xarray.Dataset:
    """one variable per broadcast orbit field; NaN where the satellite system has no such field"""
    recs = rnx.epoch_nav
    svs = sorted({f'{r.system}{r.satellite:02d}' for r in recs})
    times = sorted({nav_tag_to_datetime(r.system, r.time_tag) for r in recs})
    ti = {t: i for i, t in enumerate(times)}
    si = {sv: i for i, sv in enumerate(svs)}

    names = [n for s in NAV_FIELDS for n in NAV_FIELDS[s] if not n.startswith('spare')]
    present = {n for r in recs for n in NAV_FIELDS[r.system]}
    data = {n: np.full((len(times), len(svs)), np.nan) for n in dict.fromkeys(names) if n in present}

    for r in recs:
        nlines, nvals = nav_layout(r.system)
        values = np.concatenate((r.orbit[0, :3], r.orbit[1:nlines].ravel()[:nvals]))
        i = ti[nav_tag_to_datetime(r.system, r.time_tag)]
        j = si[f'{r.system}{r.satellite:02d}']
        for name, v in zip(NAV_FIELDS[r.system], values):
            if name.startswith('spare'):
                continue
            if r.system in ('R', 'S') and name in _KM_FIELDS:
                v *= 1000  # km => m
            data[name][i, j] = v

    # NOTE: must be 'ns' or .to_netcdf will fail!
    return xarray.Dataset({k: (('time', 'sv'), v) for k, v in data.items()},
                          coords={'time': np.array(times, dtype='datetime64[ns]'), 'sv': svs})

# %% Observation File


def rinexobs(fn: T.TextIO | str | Path,
             outfn: Path | None = None,
             use: T.Sequence[str] | None = None,
             group: str = 'OBS',
             tlim: tuple[datetime, datetime] | None = None,
             useindicators: bool = False,
             meas: T.Sequence[str] | None = None) -> xarray.Dataset:
    """
    Read RINEX 2.10 and 3.04 OBS files in ASCII, GZIP or ZIP

    Parameters
    ----------

    use : satellite systems (G, R) or satellites (G05) to keep
    meas : observable types to keep, V3 (C1C), system qualified (GC1C) or V2 (C1)
    tlim : start, stop time window
    useindicators : add loss of lock and signal strength variables (C1Clli, C1Cssi)
    """

    if isinstance(fn, (str, Path)):
        fn = Path(fn).expanduser()
# %% NetCDF4
        if fn.suffix == '.nc':
            try:
                return xarray.open_dataset(fn, group=group)
            except OSError as e:
                raise LookupError(f'Group {group} not found in {fn}   {e}')

    tlim = _tlim(tlim)
# %% version selection
    info = rinexinfo(fn)
    if info['rinextype'] != 'obs':
        raise LookupError(f'not an OBS file  {info}  {fn}')

    rnx = _reader(fn, use, meas, tlim)
    records: dict[datetime, dict[tuple[str, str], tuple[float, int, int]]] = {}
    with opener(fn) as f:
        _read_header(rnx, f, fn)
        attrs = _obs_attrs(rnx, info, fn)
        while True:
            status = rnx.read_obs_epoch(f)
            if status == EpochStatus.EOF:
                break
            if status != EpochStatus.OK or not rnx.epoch_has_date or rnx.epoch_flag not in (0, 1):
                continue
            if not rnx.filter_obs_data():
                continue

            epoch = records.setdefault(gps_to_datetime(rnx.epoch_week, rnx.epoch_tow), {})
            for i in range(len(rnx.epoch_obs)):
                d = rnx.get_obs_data(i)
                epoch[(f'{d.system}{d.satellite:02d}', d.obs_type)] = (d.value, d.lli, d.ssi)

    obs = _obs_dataset(rnx, records, useindicators)
    obs.attrs.update(attrs)
# %% optional output write
    if outfn:
        outfn = Path(outfn).expanduser()
        wmode = _groupexists(outfn, group)

        enc = {k: ENC for k in obs.data_vars}
        obs.to_netcdf(outfn, group=group, mode=wmode, encoding=enc)

    return obs


def _obs_attrs(rnx: RinexData, info: dict[str, T.Any], fn: T.TextIO | Path) -> dict[str, T.Any]:
    attrs: dict[str, T.Any] = {'version': info['version'], 'rinextype': 'obs'}
    if isinstance(fn, Path):
        attrs['filename'] = fn.name

    pos = rnx.get_hdln_data(Label.APPXYZ)
    if pos is not None:
        attrs['position'] = list(pos)
    interval = rnx.get_hdln_data(Label.INT)
    if interval is not None:
        attrs['interval'] = interval.value

    return attrs


def _obs_dataset(rnx: RinexData, records: dict, useindicators: bool) -> xarray.Dataset:
    times = sorted(records)
    svs = sorted({sv for e in records.values() for sv, _ in e})
    found = {c for e in records.values() for _, c in e}
    codes = [c for c in dict.fromkeys(c for s in rnx.systems for c in s.selected_codes()) if c in found]

    ti = {t: i for i, t in enumerate(times)}
    si = {sv: i for i, sv in enumerate(svs)}
    shape = (len(times), len(svs))

    data: dict[str, np.ndarray] = {}
    for c in codes:
        data[c] = np.full(shape, np.nan)
        if useindicators:
            data[c + 'lli'] = np.full(shape, np.nan)
            data[c + 'ssi'] = np.full(shape, np.nan)

    for t, epoch in records.items():
        for (sv, c), (value, lli, ssi) in epoch.items():
            i, j = ti[t], si[sv]
            data[c][i, j] = value
            if useindicators:
                if lli:
                    data[c + 'lli'][i, j] = lli
                if ssi:
                    data[c + 'ssi'][i, j] = ssi

    return xarray.Dataset({k: (('time', 'sv'), v) for k, v in data.items()},
                          coords={'time': np.array(times, dtype='datetime64[ns]'), 'sv': svs})


def _groupexists(fn: Path, group: str) -> str:
    logging.getLogger('torinex').info(f'saving {group}: {fn}')
    if not fn.is_file():
        return 'w'

    # be sure there isn't already NAV in it
    try:
        xarray.open_dataset(fn, group=group)
        raise ValueError(f'{group} already in {fn}')
    except OSError:
        pass

    return 'a'

# %% RINEX output


def convert(fn: T.TextIO | str | Path,
            out: str | Path,
            version: RinexVersion = RinexVersion.V304,
            use: T.Sequence[str] | None = None,
            meas: T.Sequence[str] | None = None,
            tlim: tuple[datetime, datetime] | None = None) -> Path:
    """
    re-emit a RINEX OBS or NAV file as version 2.10 or 3.04, optionally keeping
    a subset of satellites, observables and time.

    Parameters
    ----------

    out : pathlib.Path
        output file, or directory where the file gets its standard RINEX name

    Returns
    -------

    outfn : pathlib.Path
        the file written
    """
    if isinstance(fn, (str, Path)):
        fn = Path(fn).expanduser()
    out = Path(out).expanduser()

    tlim = _tlim(tlim)
    info = rinexinfo(fn)
    rnx = _reader(fn, use, meas, tlim, RinexVersion(version))

    buf = io.StringIO()
    with opener(fn) as f:
        _read_header(rnx, f, fn)
        prefix = _site(rnx, fn)
        rb = rnx.get_hdln_data(Label.RUNBY)
        rnx.set_hdln_data(Label.RUNBY, ProgramRunBy('torinex', rb.run_by if rb is not None else ''))

        if info['rinextype'] == 'obs':
            name = rnx.get_obs_filename(prefix) if rnx.has_data(Label.TOFO) else None
            if not rnx.print_obs_header(buf):
                raise ValueError(f'obligatory header records missing in {fn}')
            while True:
                status = rnx.read_obs_epoch(f)
                if status == EpochStatus.EOF:
                    break
                if status != EpochStatus.OK:
                    continue
                if name is None and rnx.epoch_has_date:
                    name = rnx.get_obs_filename(prefix)
                if rnx.filter_obs_data():
                    rnx.print_obs_epoch(buf)
        elif info['rinextype'] == 'nav':
            while rnx.read_nav_epoch(f) != EpochStatus.EOF:
                pass
            rnx.filter_nav_data()
            name = rnx.get_nav_filename(prefix)
            if not rnx.print_nav_header(buf):
                raise ValueError(f'obligatory header records missing in {fn}')
            rnx.print_nav_epochs(buf)
        else:
            raise ValueError(f'What kind of RINEX file is: {fn}')

    if out.is_dir():
        if name is None:
            raise ValueError(f'no start time in {fn} to name the output file')
        out = out / name

    out.write_text(buf.getvalue())
    return out


def _site(rnx: RinexData, fn: T.TextIO | Path) -> str:
    """four character site name for output file names"""
    marker = rnx.get_hdln_data(Label.MRKNAME)
    if marker is not None and marker.value.strip():
        return marker.value.strip()[:4]
    if isinstance(fn, Path):
        return fn.name[:4]
    return 'rnx_'
