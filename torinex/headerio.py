"""
RINEX header records: per label formatting (columns 1-60) and parsing.

RINEX 2.10 Table A1 / RINEX 3.04 Table A2.
"""

from __future__ import annotations
import typing as T

from .labels import (Label, RinexVersion, VERSION_NUMBER, SYSTEMS, IONO_KINDS, TIME_KINDS,
                     V2_CORRECTION, label_text, time_designator, time_system, v3_to_v2)
from .header import (VersionType, ProgramRunBy, Comment, Text, ObserverAgency, Receiver, Antenna,
                     Triple, Scalar, Count, PhaseCenter, WavelengthFactor, ObsTime,
                     CorrectionApplied, ScaleFactor, PhaseShift, GlonassSlot, GlonassBias,
                     LeapSeconds, PrnObsCount, Correction)
from .catalog import parse_sat
from .common import (rinex_string_to_float as rfloat, rinex_string_to_int as rint, fmt_exp,
                     epoch_fields, datetime_to_gps, gps_to_datetime)

if T.TYPE_CHECKING:
    from .rinexdata import RinexData


SBAS_PROVIDERS = ('WAAS', 'EGNOS', 'MSAS', 'GAGAN', 'SDCM', 'BDSBAS', 'KASS', 'A-SBAS', 'SPAN')

# system whose satellites broadcast each time correction
TIME_SOURCE_SYSTEM = {
    Label.TIMC_GPUT: 'G', Label.TIMC_GLUT: 'R', Label.TIMC_GAUT: 'E', Label.TIMC_BDUT: 'C',
    Label.TIMC_QZUT: 'J', Label.TIMC_IRUT: 'I', Label.TIMC_SBUT: 'S', Label.TIMC_GLGP: 'R',
    Label.TIMC_GAGP: 'E', Label.TIMC_BDGP: 'C', Label.TIMC_QZGP: 'J', Label.TIMC_IRGP: 'I',
}


def header_line(content: str, label: Label) -> str:
    return f'{content:<60.60}{label_text(label):<20}'


def _chunks(seq: T.Sequence, n: int) -> list:
    return [seq[i:i + n] for i in range(0, len(seq), n)] or [seq[:0]]


def _sat(system: str, prn: int, version: RinexVersion) -> str:
    if version == RinexVersion.V210:
        return f'{system}{prn:2d}'
    return f'{system}{prn:02d}'


def _norm_sat(token: str) -> str:
    system, prn = parse_sat(token)
    return f'{system}{prn:02d}'


def source_designator(kind: Label, source: int) -> str:
    if source >= 1000:
        try:
            return SBAS_PROVIDERS[source - 1000]
        except IndexError:
            return ''
    elif source >= 100:
        return f'S{source - 100:02d}'
    elif source > 0:
        return f"{TIME_SOURCE_SYSTEM.get(kind, 'G')}{source:02d}"
    return ''


def source_id(designator: str) -> int:
    designator = designator.strip()
    if not designator:
        return 0
    if designator in SBAS_PROVIDERS:
        return 1000 + SBAS_PROVIDERS.index(designator)

    system, prn = parse_sat(designator)
    return prn + 100 if system == 'S' else prn


def _kind(designator: str, kinds: dict[Label, str]) -> Label:
    designator = designator.strip()
    for k, v in kinds.items():
        if v == designator:
            return k
    raise ValueError(f'correction type unknown: {designator}')


# %% formatting


def fmt_version(rnx: RinexData, label: Label) -> list[str]:
    vt = rnx._values.get(Label.VERSION, VersionType())
    name = SYSTEMS.get(vt.system, SYSTEMS['M']).name
    if vt.file_type == 'O':
        ftext = 'OBSERVATION DATA'
        stext = f'{vt.system} ({name})'
    elif rnx.version == RinexVersion.V210:
        ftext = {'N': 'N: GPS NAV DATA',
                 'G': 'G: GLONASS NAV DATA',
                 'H': 'H: GEO NAV MSG DATA'}.get(vt.file_type, f'{vt.file_type}: NAV DATA')
        stext = ''
    else:
        ftext = 'N: GNSS NAV DATA'
        stext = f'{vt.system}: {name}'

    return [f"{VERSION_NUMBER[rnx.version]:9.2f}{'':11}{ftext:<20.20}{stext:<20.20}"]


def fmt_runby(rnx: RinexData, label: Label) -> list[str]:
    v = rnx._values[label]
    return [f'{v.program:<20.20}{v.run_by:<20.20}{v.date:<20.20}']


def fmt_text(width: int):
    def fmt(rnx: RinexData, label: Label) -> list[str]:
        return [f'{rnx._values[label].value:<{width}.{width}}']
    return fmt


def fmt_agency(rnx: RinexData, label: Label) -> list[str]:
    v = rnx._values[label]
    return [f'{v.observer:<20.20}{v.agency:<40.40}']


def fmt_receiver(rnx: RinexData, label: Label) -> list[str]:
    v = rnx._values[label]
    return [f'{v.number:<20.20}{v.type:<20.20}{v.version:<20.20}']


def fmt_antenna(rnx: RinexData, label: Label) -> list[str]:
    v = rnx._values[label]
    return [f'{v.number:<20.20}{v.type:<20.20}']


def fmt_triple(rnx: RinexData, label: Label) -> list[str]:
    v = rnx._values[label]
    return [f'{v.x:14.4f}{v.y:14.4f}{v.z:14.4f}']


def fmt_phasecenter(rnx: RinexData, label: Label) -> list[str]:
    v = rnx._values[label]
    return [f'{v.system:1.1} {v.code:3.3}{v.north:9.4f}{v.east:14.4f}{v.up:14.4f}']


def fmt_azimuth(rnx: RinexData, label: Label) -> list[str]:
    return [f'{rnx._values[label].value:14.4f}']


def fmt_interval(rnx: RinexData, label: Label) -> list[str]:
    return [f'{rnx._values[label].value:10.3f}']


def fmt_count(rnx: RinexData, label: Label) -> list[str]:
    return [f'{rnx._values[label].value:6d}']


def fmt_wavelength(rnx: RinexData, label: Label) -> list[str]:
    lines = []
    for w in rnx._lists[label]:
        if not w.satellites:
            lines.append(f'{w.l1:6d}{w.l2:6d}')
            continue
        for sats in _chunks(w.satellites, 7):
            sv = ''.join(f'   {_sat(*parse_sat(s), RinexVersion.V210)}' for s in sats)
            lines.append(f'{w.l1:6d}{w.l2:6d}{len(sats):6d}{sv}')
    return lines


def fmt_tobs(rnx: RinexData, label: Label) -> list[str]:
    codes = [v3_to_v2(c) for c in rnx.v2_printable_codes()]
    lines = []
    for i, chunk in enumerate(_chunks(codes, 9)):
        head = f'{len(codes):6d}' if i == 0 else ' ' * 6
        lines.append(head + ''.join(f"{'':4}{c:2}" for c in chunk))
    return lines


def fmt_sys(rnx: RinexData, label: Label) -> list[str]:
    lines = []
    for s in rnx.systems:
        if not s.selected:
            continue
        codes = s.printable_codes()
        if not codes:
            continue
        for i, chunk in enumerate(_chunks(codes, 13)):
            head = f'{s.system}  {len(codes):3d}' if i == 0 else ' ' * 6
            lines.append(head + ''.join(f' {c:3}' for c in chunk))
    return lines


def fmt_obstime(rnx: RinexData, label: Label) -> list[str]:
    v = rnx._values[label]
    y, m, d, hh, mm, ss = epoch_fields(v.week, v.tow)
    return [f"{y:6d}{m:6d}{d:6d}{hh:6d}{mm:6d}{ss:13.7f}{'':5}{time_designator(v.time_system):3}"]


def fmt_applied(rnx: RinexData, label: Label) -> list[str]:
    return [f'{v.system:1.1} {v.program:<17.17} {v.source:<40.40}' for v in rnx._lists[label]]


def fmt_scale(rnx: RinexData, label: Label) -> list[str]:
    lines = []
    for v in rnx._lists[label]:
        if not v.types:
            lines.append(f'{v.system:1.1} {v.factor:4d}')
            continue
        for i, chunk in enumerate(_chunks(v.types, 12)):
            head = f'{v.system:1.1} {v.factor:4d}  {len(v.types):2d}' if i == 0 else ' ' * 10
            lines.append(head + ''.join(f' {c:3}' for c in chunk))
    return lines


def fmt_phaseshift(rnx: RinexData, label: Label) -> list[str]:
    lines = []
    for v in rnx._lists[label]:
        if not v.satellites:
            lines.append(f'{v.system:1.1} {v.code:3.3} {v.correction:8.5f}')
            continue
        for i, chunk in enumerate(_chunks(v.satellites, 10)):
            head = f'{v.system:1.1} {v.code:3.3} {v.correction:8.5f}  {len(v.satellites):2d}' if i == 0 else ' ' * 18
            lines.append(head + ''.join(f' {s:3}' for s in chunk))
    return lines


def fmt_slots(rnx: RinexData, label: Label) -> list[str]:
    slots = rnx._lists[label]
    lines = []
    for i, chunk in enumerate(_chunks(slots, 8)):
        head = f'{len(slots):3d} ' if i == 0 else ' ' * 4
        lines.append(head + ''.join(f'R{s.slot:02d} {s.frequency:2d} ' for s in chunk))
    return lines


def fmt_glbias(rnx: RinexData, label: Label) -> list[str]:
    return [''.join(f' {b.code:3} {b.bias:8.3f}' for b in chunk)
            for chunk in _chunks(rnx._lists[label], 4)]


def fmt_leap(rnx: RinexData, label: Label) -> list[str]:
    v = rnx._values[label]
    if rnx.version == RinexVersion.V210 or not (v.delta or v.week or v.day or v.system):
        return [f'{v.seconds:6d}']
    return [f'{v.seconds:6d}{v.delta:6d}{v.week:6d}{v.day:6d}{v.system:3.3}']


def fmt_prnobs(rnx: RinexData, label: Label) -> list[str]:
    lines = []
    for v in rnx._lists[label]:
        for i, chunk in enumerate(_chunks(v.counts, 9)):
            head = f'   {_sat(v.system, v.prn, rnx.version)}' if i == 0 else ' ' * 6
            lines.append(head + ''.join(f'{c:6d}' for c in chunk))
    return lines


def fmt_iono2(rnx: RinexData, label: Label) -> list[str]:
    kind = V2_CORRECTION[label]
    return ['  ' + ''.join(fmt_exp(p, 12, 4) for p in c.params[:4])
            for c in rnx.corrections if c.kind == kind][:1]


def fmt_dutc(rnx: RinexData, label: Label) -> list[str]:
    """
    first correction of the kind held by the label.
    The S,U fields of D-UTC A0,A1,T,W,S,U do not fit in columns 1-60 and are not printed.
    """
    kind = V2_CORRECTION[label]
    for c in rnx.corrections:
        if c.kind != kind:
            continue
        a0, a1, t, w = c.params[:4]
        if label == Label.CORRT:
            tt = gps_to_datetime(int(w), t)
            return [f"{tt.year:6d}{tt.month:6d}{tt.day:6d}{'':3}{fmt_exp(a0, 19, 12)}"]
        return [f"{'':3}{fmt_exp(a0, 19, 12)}{fmt_exp(a1, 19, 12)}{int(t):9d}{int(w):9d}"]
    return []


def fmt_ionc(rnx: RinexData, label: Label) -> list[str]:
    lines = []
    for c in rnx.corrections:
        if c.kind not in IONO_KINDS:
            continue
        n = 3 if c.kind == Label.IONC_GAL else 4
        params = ''.join(fmt_exp(p, 12, 4, 'E') for p in c.params[:n])
        ln = f'{IONO_KINDS[c.kind]:4} {params:<48}'
        if c.source:
            mark = chr(ord('A') + int(c.time_mark) // 3600 % 24)
            ln += f' {mark} {c.source:2d}'
        lines.append(ln)
    return lines


def fmt_timc(rnx: RinexData, label: Label) -> list[str]:
    lines = []
    for c in rnx.corrections:
        if c.kind not in TIME_KINDS:
            continue
        a0, a1, t, w = c.params[:4]
        lines.append(f"{TIME_KINDS[c.kind]:4} {fmt_exp(a0, 17, 10, 'E')}{fmt_exp(a1, 16, 9, 'E')}"
                     f'{int(t):7d}{int(w):5d} {source_designator(c.kind, c.source):5.5} {c.time_mark:2d}')
    return lines


def fmt_eoh(rnx: RinexData, label: Label) -> list[str]:
    return ['']


FORMATTERS: dict[Label, T.Callable[[T.Any, Label], list[str]]] = {
    Label.VERSION: fmt_version,
    Label.RUNBY: fmt_runby,
    Label.MRKNAME: fmt_text(60),
    Label.MRKNUMBER: fmt_text(20),
    Label.MRKTYPE: fmt_text(20),
    Label.AGENCY: fmt_agency,
    Label.RECEIVER: fmt_receiver,
    Label.ANTTYPE: fmt_antenna,
    Label.APPXYZ: fmt_triple,
    Label.ANTHEN: fmt_triple,
    Label.ANTXYZ: fmt_triple,
    Label.ANTPHC: fmt_phasecenter,
    Label.ANTBS: fmt_triple,
    Label.ANTZDAZI: fmt_azimuth,
    Label.ANTZDXYZ: fmt_triple,
    Label.COFM: fmt_triple,
    Label.WVLEN: fmt_wavelength,
    Label.TOBS: fmt_tobs,
    Label.SYS: fmt_sys,
    Label.SIGU: fmt_text(20),
    Label.INT: fmt_interval,
    Label.TOFO: fmt_obstime,
    Label.TOLO: fmt_obstime,
    Label.CLKOFFS: fmt_count,
    Label.DCBS: fmt_applied,
    Label.PCVS: fmt_applied,
    Label.SCALE: fmt_scale,
    Label.PHSH: fmt_phaseshift,
    Label.GLSLT: fmt_slots,
    Label.GLPHS: fmt_glbias,
    Label.SATS: fmt_count,
    Label.PRNOBS: fmt_prnobs,
    Label.IONA: fmt_iono2,
    Label.IONB: fmt_iono2,
    Label.IONC: fmt_ionc,
    Label.DUTC: fmt_dutc,
    Label.CORRT: fmt_dutc,
    Label.GEOT: fmt_dutc,
    Label.TIMC: fmt_timc,
    Label.LEAP: fmt_leap,
    Label.EOH: fmt_eoh,
}


# %% parsing
# Each parser gets columns 1-60 of the line and stores what it finds through
# RinexData._store(), raising ValueError on malformed fields.
# Lines continuing a previous record are recognized by their blank leading field.


def parse_version(rnx: RinexData, label: Label, c: str):
    vers = float(c[:9])
    file_type = c[20]
    system = c[40] if len(c) > 40 else ' '
    if vers < 3:
        system = {'N': 'G', 'G': 'R', 'H': 'S'}.get(file_type, system)
    if system == ' ':
        system = 'G'
    rnx._store(label, VersionType(file_type, system, vers))


def parse_runby(rnx: RinexData, label: Label, c: str):
    rnx._store(label, ProgramRunBy(c[:20].rstrip(), c[20:40].rstrip(), c[40:60].rstrip()))


def parse_comment(rnx: RinexData, label: Label, c: str):
    rnx._store(label, Comment(c.rstrip()))


def parse_text(width: int):
    def parse(rnx: RinexData, label: Label, c: str):
        rnx._store(label, Text(c[:width].rstrip()))
    return parse


def parse_agency(rnx: RinexData, label: Label, c: str):
    rnx._store(label, ObserverAgency(c[:20].rstrip(), c[20:60].rstrip()))


def parse_receiver(rnx: RinexData, label: Label, c: str):
    rnx._store(label, Receiver(c[:20].rstrip(), c[20:40].rstrip(), c[40:60].rstrip()))


def parse_antenna(rnx: RinexData, label: Label, c: str):
    rnx._store(label, Antenna(c[:20].rstrip(), c[20:40].rstrip()))


def parse_triple(rnx: RinexData, label: Label, c: str):
    rnx._store(label, Triple(rfloat(c[:14]), rfloat(c[14:28]), rfloat(c[28:42])))


def parse_phasecenter(rnx: RinexData, label: Label, c: str):
    rnx._store(label, PhaseCenter(c[0], c[2:5].strip(), rfloat(c[5:14]),
                                  rfloat(c[14:28]), rfloat(c[28:42])))


def parse_azimuth(rnx: RinexData, label: Label, c: str):
    rnx._store(label, Scalar(rfloat(c[:14])))


def parse_interval(rnx: RinexData, label: Label, c: str):
    rnx._store(label, Scalar(rfloat(c[:10])))


def parse_count(rnx: RinexData, label: Label, c: str):
    rnx._store(label, Count(int(c[:6])))


def parse_wavelength(rnx: RinexData, label: Label, c: str):
    n = rint(c[12:18])
    sats = tuple(_norm_sat(c[18 + i * 6 + 3:18 + i * 6 + 6]) for i in range(n))
    rnx._store(label, WavelengthFactor(int(c[:6]), rint(c[6:12]), sats))


def parse_tobs(rnx: RinexData, label: Label, c: str):
    codes = [c[6 + i * 6:12 + i * 6].strip() for i in range(9)]
    codes = [x for x in codes if x]
    if c[:6].strip():
        rnx._declared[label] = int(c[:6])
        rnx._set_v2_obs_types(codes, continuation=False)
    else:
        rnx._set_v2_obs_types(codes, continuation=True)


def parse_sys(rnx: RinexData, label: Label, c: str):
    codes = [c[7 + i * 4:10 + i * 4].strip() for i in range(13)]
    codes = [x for x in codes if x]
    if c[0] != ' ':
        rnx._declared[c[0]] = int(c[3:6])
        rnx._set_sys_obs_types(c[0], codes, continuation=False)
    else:
        rnx._set_sys_obs_types('', codes, continuation=True)


def parse_obstime(rnx: RinexData, label: Label, c: str):
    week, tow = datetime_to_gps(int(c[:6]), int(c[6:12]), int(c[12:18]),
                                int(c[18:24]), int(c[24:30]), rfloat(c[30:43]))
    tsys = time_system(c[48:51]) if len(c) > 48 else ' '
    rnx._store(label, ObsTime(week, tow, 'G' if tsys == ' ' else tsys))


def parse_applied(rnx: RinexData, label: Label, c: str):
    rnx._store(label, CorrectionApplied(c[0], c[2:19].rstrip(), c[20:60].rstrip()))


def parse_scale(rnx: RinexData, label: Label, c: str):
    codes = [c[11 + i * 4:14 + i * 4].strip() for i in range(12)]
    codes = tuple(x for x in codes if x)
    if c[0] != ' ':
        rnx._store(label, ScaleFactor(c[0], int(c[2:6]), codes))
    else:
        rnx._extend_last(label, 'types', codes)


def parse_phaseshift(rnx: RinexData, label: Label, c: str):
    sats = [c[19 + i * 4:22 + i * 4].strip() for i in range(10)]
    sats = tuple(_norm_sat(x) for x in sats if x)
    if c[0] != ' ':
        rnx._store(label, PhaseShift(c[0], c[2:5].strip(), rfloat(c[6:14]), sats))
    else:
        rnx._extend_last(label, 'satellites', sats)


def parse_slots(rnx: RinexData, label: Label, c: str):
    if c[:3].strip():
        rnx._declared[label] = int(c[:3])
    elif label not in rnx._declared:
        raise ValueError('Continuation line not following a regular one')

    for i in range(8):
        e = c[4 + i * 7:11 + i * 7]
        if not e.strip():
            break
        system, prn = parse_sat(e[:3])
        if not e[4:6].strip():
            raise ValueError(f'{e[:3]} no frequency number')
        rnx._store(label, GlonassSlot(prn, int(e[4:6])))


def parse_glbias(rnx: RinexData, label: Label, c: str):
    for i in range(4):
        e = c[i * 13:(i + 1) * 13]
        if e[1:4].strip():
            rnx._store(label, GlonassBias(e[1:4], rfloat(e[5:13])))


def parse_leap(rnx: RinexData, label: Label, c: str):
    rnx._store(label, LeapSeconds(int(c[:6]), rint(c[6:12]), rint(c[12:18]), rint(c[18:24]),
                                  c[24:27].strip()))


def parse_prnobs(rnx: RinexData, label: Label, c: str):
    fields = [c[6 + i * 6:12 + i * 6].strip() for i in range(9)]
    while fields and not fields[-1]:
        fields.pop()
    counts = tuple(int(x) if x else 0 for x in fields)
    if c[3:6].strip():
        system, prn = parse_sat(c[3:6])
        rnx._store(label, PrnObsCount(system, prn, counts))
    else:
        rnx._extend_last(label, 'counts', counts)


def parse_iono2(rnx: RinexData, label: Label, c: str):
    params = tuple(rfloat(c[2 + i * 12:14 + i * 12]) for i in range(4))
    rnx._store(label, Correction(V2_CORRECTION[label], params))


def parse_dutc(rnx: RinexData, label: Label, c: str):
    kind = V2_CORRECTION[label]
    if label == Label.CORRT:
        week, tow = datetime_to_gps(int(c[:6]), int(c[6:12]), int(c[12:18]))
        rnx._store(label, Correction(kind, (rfloat(c[21:40]), 0.0, tow, week)))
    else:
        params = (rfloat(c[3:22]), rfloat(c[22:41]), rint(c[41:50]), rint(c[50:59]))
        rnx._store(label, Correction(kind, params))


def parse_ionc(rnx: RinexData, label: Label, c: str):
    kind = _kind(c[:4], IONO_KINDS)
    params = tuple(rfloat(c[5 + i * 12:17 + i * 12]) for i in range(4))
    mark = c[54:55].strip() if len(c) > 54 else ''
    source = rint(c[56:58]) if len(c) > 56 else 0
    time_mark = (ord(mark) - ord('A')) * 3600 if mark else 0
    rnx._store(label, Correction(kind, params, time_mark, source))


def parse_timc(rnx: RinexData, label: Label, c: str):
    kind = _kind(c[:4], TIME_KINDS)
    params = (rfloat(c[5:22]), rfloat(c[22:38]), rint(c[38:45]), rint(c[45:50]))
    rnx._store(label, Correction(kind, params, rint(c[57:59]), source_id(c[51:56])))


def parse_eoh(rnx: RinexData, label: Label, c: str):
    pass


PARSERS: dict[Label, T.Callable[[T.Any, Label, str], None]] = {
    Label.VERSION: parse_version,
    Label.RUNBY: parse_runby,
    Label.COMM: parse_comment,
    Label.MRKNAME: parse_text(60),
    Label.MRKNUMBER: parse_text(20),
    Label.MRKTYPE: parse_text(20),
    Label.AGENCY: parse_agency,
    Label.RECEIVER: parse_receiver,
    Label.ANTTYPE: parse_antenna,
    Label.APPXYZ: parse_triple,
    Label.ANTHEN: parse_triple,
    Label.ANTXYZ: parse_triple,
    Label.ANTPHC: parse_phasecenter,
    Label.ANTBS: parse_triple,
    Label.ANTZDAZI: parse_azimuth,
    Label.ANTZDXYZ: parse_triple,
    Label.COFM: parse_triple,
    Label.WVLEN: parse_wavelength,
    Label.TOBS: parse_tobs,
    Label.SYS: parse_sys,
    Label.SIGU: parse_text(20),
    Label.INT: parse_interval,
    Label.TOFO: parse_obstime,
    Label.TOLO: parse_obstime,
    Label.CLKOFFS: parse_count,
    Label.DCBS: parse_applied,
    Label.PCVS: parse_applied,
    Label.SCALE: parse_scale,
    Label.PHSH: parse_phaseshift,
    Label.GLSLT: parse_slots,
    Label.GLPHS: parse_glbias,
    Label.SATS: parse_count,
    Label.PRNOBS: parse_prnobs,
    Label.IONA: parse_iono2,
    Label.IONB: parse_iono2,
    Label.IONC: parse_ionc,
    Label.DUTC: parse_dutc,
    Label.CORRT: parse_dutc,
    Label.GEOT: parse_dutc,
    Label.TIMC: parse_timc,
    Label.LEAP: parse_leap,
    Label.EOH: parse_eoh,
}
