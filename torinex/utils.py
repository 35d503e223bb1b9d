from __future__ import annotations
from pathlib import Path
import typing as T
from datetime import datetime
from dateutil.parser import parse
import io

import numpy as np

from .rio import rinexinfo, opener
from .labels import Label, RinexVersion, in_version
from .rinexdata import RinexData
from .epoch import EpochStatus, nav_tag_to_datetime
from .common import gps_to_datetime


def reader(fn: T.TextIO | Path) -> RinexData:
    """RinexData printing in the version of the file fn"""
    info = rinexinfo(fn)
    vers = int(info['version'])
    if vers == 2:
        return RinexData(RinexVersion.V210)
    elif vers == 3:
        return RinexData(RinexVersion.V304)

    raise ValueError(f"Unknown RINEX version {info['version']} {fn}")


def gettime(fn: T.TextIO | Path) -> np.ndarray:
    """
    get times in RINEX 2/3 file

    Parameters
    ----------

    fn : pathlib.Path or io.StringIO
        RINEX file or stream to process

    Returns
    -------

    times : numpy.ndarray of datetime.datetime
        1-D vector of epochs in file. For NAV files, the distinct times of the
        navigation records.
    """
    if isinstance(fn, str):
        fn = Path(fn).expanduser()

    info = rinexinfo(fn)
    rnx = reader(fn)

    times: list[datetime] = []
    with opener(fn) as f:
        if rnx.read_rinex_header(f) != Label.EOH:
            raise ValueError(f'RINEX header not found in {fn}')

        if info['rinextype'] == 'obs':
            while True:
                status = rnx.read_obs_epoch(f)
                if status == EpochStatus.EOF:
                    break
                if status == EpochStatus.OK and rnx.epoch_has_date and rnx.epoch_flag in (0, 1):
                    times.append(gps_to_datetime(rnx.epoch_week, rnx.epoch_tow))
        elif info['rinextype'] == 'nav':
            while rnx.read_nav_epoch(f) != EpochStatus.EOF:
                pass
            times = sorted({nav_tag_to_datetime(r.system, r.time_tag) for r in rnx.epoch_nav})
        else:
            raise ValueError(f'per-observation time is in NAV, OBS files, not {info}  {fn}')

    return np.asarray(times, dtype=datetime)


def rinexheader(fn: T.TextIO | str | Path) -> dict[str, T.Any]:
    """
    retrieve RINEX 2/3 header as dict: label text -> stored payload,
    or list of payloads for labels with several records
    """
    if isinstance(fn, (str, Path)):
        fn = Path(fn).expanduser()
    elif isinstance(fn, io.StringIO):
        fn.seek(0)
    elif isinstance(fn, io.TextIOWrapper):
        pass
    else:
        raise TypeError(f'unknown RINEX filetype {type(fn)}')

    rnx = reader(fn)
    with opener(fn) as f:
        if rnx.read_rinex_header(f) != Label.EOH:
            raise ValueError(f'RINEX header not found in {fn}')

    labels: list[Label] = []
    label = rnx.first_label_id()
    while label != Label.LASTONE:
        if label not in labels and label != Label.EOH and in_version(label, rnx.version):
            labels.append(label)
        label = rnx.next_label_id()

    hdr: dict[str, T.Any] = {'version': rnx.in_file_number}
    for label in labels:
        recs = rnx.get_hdln_records(label)
        if not recs:
            continue
        hdr[rnx.id_to_lbl(label)] = recs if len(recs) > 1 or label == Label.COMM else recs[0]

    return hdr


def _tlim(tlim: tuple[str, str] | tuple[datetime, datetime] | None = None) -> tuple[datetime, datetime] | None:
    if tlim is None:
        pass
    elif len(tlim) == 2 and isinstance(tlim[0], datetime):
        pass
    elif len(tlim) == 2 and isinstance(tlim[0], str):
        tlim = (parse(tlim[0]), parse(tlim[1]))
    else:
        raise ValueError(f'Not sure what time limits are: {tlim}')

    if tlim is not None and tlim[1] < tlim[0]:
        raise ValueError('stop time must be after start time')

    return T.cast(T.Tuple[datetime, datetime], tlim)
