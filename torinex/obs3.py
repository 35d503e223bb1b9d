"""
RINEX 3.04 observation epochs
"""

from __future__ import annotations
import typing as T

from .catalog import parse_sat
from .epoch import EpochStatus, MSG_MISMATCH_CODES, obs_field
from .common import (epoch_fields, datetime_to_gps,
                     rinex_string_to_float as rfloat, rinex_string_to_int as rint)

if T.TYPE_CHECKING:
    from .rinexdata import RinexData


FIELD = 16


def epoch_line(rnx: RinexData, flag: int, n: int, with_date: bool) -> str:
    if with_date:
        y, m, d, hh, mm, ss = epoch_fields(rnx.epoch_week, rnx.epoch_tow)
        date = f'> {y:4d} {m:02d} {d:02d} {hh:02d} {mm:02d}{ss:11.7f}'
    else:
        date = f"{'>':<29}"

    ln = f'{date}  {flag:1d}{n:3d}'
    if with_date and rnx.epoch_bias:
        ln += f"{'':6}{rnx.epoch_bias:15.12f}"

    return ln


def print_event(rnx: RinexData, out: T.TextIO, flag: int, lines: list[str], with_date: bool) -> None:
    out.write(epoch_line(rnx, flag, len(lines), with_date) + '\n')
    for ln in lines:
        out.write(ln + '\n')


def print_epoch(rnx: RinexData, out: T.TextIO) -> bool:
    if 2 <= rnx.epoch_flag <= 5:
        print_event(rnx, out, rnx.epoch_flag, rnx._event_lines(), rnx._epoch_has_date)
        return True

    values = {r.key(): r for r in rnx.epoch_obs}

    rows = []
    for i, prn in sorted({(r.sys_index, r.satellite) for r in rnx.epoch_obs}):
        s = rnx.systems[i]
        if not s.is_sat_selected(prn):
            continue
        fields = []
        for c in s.printable_codes():
            r = values.get((i, prn, s.index(c)))
            fields.append(' ' * FIELD if r is None else obs_field(r))
        if any(x.strip() for x in fields):
            rows.append(f'{s.system}{prn:02d}' + ''.join(fields))

    if not rows:
        return False

    out.write(epoch_line(rnx, rnx.epoch_flag, len(rows), True) + '\n')
    for row in rows:
        out.write(row.rstrip() + '\n')

    return True


def read_epoch(rnx: RinexData, f: T.TextIO) -> EpochStatus:
    """
    one epoch: the epoch line starting with '>', then one line per satellite
    holding the observables of its SYS / # / OBS TYPES record
    """
    while True:
        ln = rnx._readline(f)
        if not ln:
            return EpochStatus.EOF
        ln = ln.rstrip('\r\n')
        if ln.startswith('>'):
            break
        if ln.strip():
            rnx.log.warning(f'Epoch line expected, skipped: {ln}')

    try:
        flag = int(ln[31])
        n = rint(ln[32:35])
        if ln[2:29].strip():
            week, tow = datetime_to_gps(int(ln[2:6]), int(ln[7:9]), int(ln[10:12]),
                                        int(ln[13:15]), int(ln[16:18]), float(ln[18:29]))
            rnx.set_epoch_time(week, tow, rfloat(ln[41:56]), flag)
        elif 2 <= flag <= 4:
            rnx._set_event(flag)
        else:
            raise ValueError(f'epoch flag {flag} requires a date')
    except (ValueError, IndexError) as e:
        rnx.log.warning(f'{e}: {ln}')
        return EpochStatus.ERROR

    if 2 <= flag <= 5:
        return rnx._read_event(f, n)

    status = EpochStatus.OK
    for _ in range(n):
        data = rnx._readline(f)
        if not data:
            rnx.log.error(f'End of file in observations of epoch {ln}')
            rnx.clear_obs_data()
            return EpochStatus.ERROR
        data = data.rstrip('\r\n')
        if status == EpochStatus.ERROR:
            continue

        try:
            system, prn = parse_sat(data[:3])
            order = rnx._in_obs_order.get(system)
            if order is None:
                rnx.log.warning(f'System {system} not in SYS / # / OBS TYPES, skipped: {data}')
                continue
            if data[3 + len(order) * FIELD:].strip():
                raise ValueError(MSG_MISMATCH_CODES)

            s = rnx.systems[rnx._sys_index(system)]
            for k, j in enumerate(order):
                field = f'{data[3 + k * FIELD:3 + (k + 1) * FIELD]:<{FIELD}}'
                if not field[:14].strip():
                    continue
                code = s.obs_types[j].code
                if not rnx.save_obs_data(system, prn, code, float(field[:14]),
                                         rint(field[14]), rint(field[15])):
                    raise ValueError(f'{system}{prn:02d} {code} not stored')
        except ValueError as e:
            rnx.log.warning(f'{e}: {data}')
            status = EpochStatus.ERROR

    if status == EpochStatus.ERROR:
        rnx.clear_obs_data()

    return status
