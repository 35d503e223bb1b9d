"""
RINEX 2.10 observation epochs
"""

from __future__ import annotations
import typing as T
from math import ceil

from .catalog import parse_sat
from .epoch import EpochStatus, MSG_MISMATCH_CODES, obs_field
from .common import (epoch_fields, datetime_to_gps, full_year,
                     rinex_string_to_float as rfloat, rinex_string_to_int as rint)

if T.TYPE_CHECKING:
    from .rinexdata import RinexData


NSAT_LINE = 12  # satellites in the epoch line and its continuation lines
NOBS_LINE = 5  # observables per data line
FIELD = 16


def is_epoch_line(ln: str) -> bool:
    return (len(ln) >= 32 and ln[0] == ' ' and ln[26:28] == '  ' and ln[28].isdigit()
            and all(ln[i] == ' ' for i in (3, 6, 9, 12)))


def epoch_line(rnx: RinexData, flag: int, n: int, sats: T.Sequence[str], with_date: bool) -> str:
    if with_date:
        y, m, d, hh, mm, ss = epoch_fields(rnx.epoch_week, rnx.epoch_tow)
        date = f' {y % 100:02d} {m:2d} {d:2d} {hh:2d} {mm:2d}{ss:11.7f}'
    else:
        date = ' ' * 26

    ln = f"{date}  {flag:1d}{n:3d}{''.join(sats):<36}"
    if with_date and rnx.epoch_bias:
        ln += f'{rnx.epoch_bias:12.9f}'

    return ln.rstrip()


def print_event(rnx: RinexData, out: T.TextIO, flag: int, lines: list[str], with_date: bool) -> None:
    out.write(epoch_line(rnx, flag, len(lines), [], with_date) + '\n')
    for ln in lines:
        out.write(ln + '\n')


def print_epoch(rnx: RinexData, out: T.TextIO) -> bool:
    if 2 <= rnx.epoch_flag <= 5:
        print_event(rnx, out, rnx.epoch_flag, rnx._event_lines(), rnx._epoch_has_date)
        return True

    codes = rnx.v2_printable_codes()
    values = {r.key(): r for r in rnx.epoch_obs}

    rows = []
    for i, prn in sorted({(r.sys_index, r.satellite) for r in rnx.epoch_obs}):
        s = rnx.systems[i]
        if not s.is_sat_selected(prn):
            continue
        fields = []
        for c in codes:
            j = s.index(c)
            r = values.get((i, prn, j))
            fields.append(obs_field(r) if r is not None and s.obs_types[j].prt else ' ' * FIELD)
        if any(x.strip() for x in fields):
            rows.append((f'{s.system}{prn:2d}', fields))

    if not rows:
        return False

    sats = [sv for sv, _ in rows]
    out.write(epoch_line(rnx, rnx.epoch_flag, len(sats), sats[:NSAT_LINE], True) + '\n')
    for k in range(NSAT_LINE, len(sats), NSAT_LINE):
        out.write((' ' * 32 + ''.join(sats[k:k + NSAT_LINE])).rstrip() + '\n')

    for _, fields in rows:
        for k in range(0, len(fields), NOBS_LINE):
            out.write(''.join(fields[k:k + NOBS_LINE]).rstrip() + '\n')

    return True


def read_epoch(rnx: RinexData, f: T.TextIO) -> EpochStatus:
    """
    one epoch: the epoch line, satellite continuation lines and, per satellite,
    the data lines holding the observables of # / TYPES OF OBSERV
    """
    while True:
        ln = rnx._readline(f)
        if not ln:
            return EpochStatus.EOF
        ln = ln.rstrip('\r\n')
        if is_epoch_line(ln):
            break
        if ln.strip():
            rnx.log.warning(f'Epoch line expected, skipped: {ln}')

    flag = int(ln[28])
    try:
        n = rint(ln[29:32])
        if ln[1:26].strip():
            week, tow = datetime_to_gps(full_year(int(ln[1:3])), int(ln[4:6]), int(ln[7:9]),
                                        int(ln[10:12]), int(ln[13:15]), rfloat(ln[15:26]))
            rnx.set_epoch_time(week, tow, rfloat(ln[68:80]), flag)
        elif 2 <= flag <= 4:
            rnx._set_event(flag)
        else:
            raise ValueError(f'epoch flag {flag} requires a date')
    except ValueError as e:
        rnx.log.warning(f'{e}: {ln}')
        return EpochStatus.ERROR

    if 2 <= flag <= 5:
        return rnx._read_event(f, n)
# %% satellite list
    sats = []
    cur = ln
    for k in range(n):
        if k and k % NSAT_LINE == 0:
            cur = rnx._readline(f).rstrip('\r\n')
        p = 32 + (k % NSAT_LINE) * 3
        sats.append(cur[p:p + 3])
# %% observation lines
    ntypes = len(rnx._v2_types)
    nlines = max(1, ceil(ntypes / NOBS_LINE))
    last_width = (ntypes - NOBS_LINE * (nlines - 1)) * FIELD

    status = EpochStatus.OK
    for tok in sats:
        lines = [rnx._readline(f) for _ in range(nlines)]
        if not lines[-1]:
            rnx.log.error(f'End of file in observations of epoch {ln}')
            rnx.clear_obs_data()
            return EpochStatus.ERROR
        if status == EpochStatus.ERROR:
            continue

        lines = [x.rstrip('\r\n') for x in lines]
        if any(x[NOBS_LINE * FIELD:].strip() for x in lines[:-1]) or lines[-1][last_width:].strip():
            rnx.log.warning(f'{MSG_MISMATCH_CODES}: {ln}')
            status = EpochStatus.ERROR
            continue

        try:
            system, prn = parse_sat(tok)
            s = rnx._v2_system(system)
            data = ''.join(f'{x:<{NOBS_LINE * FIELD}}' for x in lines)
            for k, code in enumerate(rnx._v2_types):
                field = data[k * FIELD:(k + 1) * FIELD]
                if code is None or not field[:14].strip():
                    continue
                if not rnx.save_obs_data(system, prn, code, float(field[:14]),
                                         rint(field[14]), rint(field[15])):
                    raise ValueError(f'{s.system}{prn:02d} {code} not stored')
        except ValueError as e:
            rnx.log.warning(f'{e}: {ln}')
            status = EpochStatus.ERROR

    if status == EpochStatus.ERROR:
        rnx.clear_obs_data()

    return status
