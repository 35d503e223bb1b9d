"""
RINEX header labels, versions and the static tables used to handle them.

RINEX 2.10: ftp://igs.org/pub/data/format/rinex210.txt
RINEX 3.04: ftp://igs.org/pub/data/format/rinex304.pdf
"""

from __future__ import annotations
import enum
import typing as T


class RinexVersion(enum.IntEnum):
    V210 = 0
    V304 = 1
    VALL = 2  # features applicable to all versions
    VTBD = 3  # to be defined


VERSION_NUMBER = {RinexVersion.V210: 2.10, RinexVersion.V304: 3.04}


class Label(enum.IntEnum):
    NOLABEL = 0
    VERSION = enum.auto()
    RUNBY = enum.auto()
    COMM = enum.auto()
    MRKNAME = enum.auto()
    MRKNUMBER = enum.auto()
    MRKTYPE = enum.auto()
    AGENCY = enum.auto()
    RECEIVER = enum.auto()
    ANTTYPE = enum.auto()
    APPXYZ = enum.auto()
    ANTHEN = enum.auto()
    ANTXYZ = enum.auto()
    ANTPHC = enum.auto()
    ANTBS = enum.auto()
    ANTZDAZI = enum.auto()
    ANTZDXYZ = enum.auto()
    COFM = enum.auto()
    WVLEN = enum.auto()
    TOBS = enum.auto()
    SYS = enum.auto()
    SIGU = enum.auto()
    INT = enum.auto()
    TOFO = enum.auto()
    TOLO = enum.auto()
    CLKOFFS = enum.auto()
    DCBS = enum.auto()
    PCVS = enum.auto()
    SCALE = enum.auto()
    PHSH = enum.auto()
    GLSLT = enum.auto()
    GLPHS = enum.auto()
    SATS = enum.auto()
    PRNOBS = enum.auto()
    IONA = enum.auto()
    IONB = enum.auto()
    IONC = enum.auto()
    DUTC = enum.auto()
    CORRT = enum.auto()
    GEOT = enum.auto()
    TIMC = enum.auto()
    LEAP = enum.auto()
    EOH = enum.auto()
    # ionospheric correction kinds
    IONC_GAL = enum.auto()
    IONC_GPSA = enum.auto()
    IONC_GPSB = enum.auto()
    IONC_QZSA = enum.auto()
    IONC_QZSB = enum.auto()
    IONC_BDSA = enum.auto()
    IONC_BDSB = enum.auto()
    IONC_IRNA = enum.auto()
    IONC_IRNB = enum.auto()
    # time system correction kinds
    TIMC_GPUT = enum.auto()
    TIMC_GLUT = enum.auto()
    TIMC_GAUT = enum.auto()
    TIMC_BDUT = enum.auto()
    TIMC_QZUT = enum.auto()
    TIMC_IRUT = enum.auto()
    TIMC_SBUT = enum.auto()
    TIMC_GLGP = enum.auto()
    TIMC_GAGP = enum.auto()
    TIMC_BDGP = enum.auto()
    TIMC_QZGP = enum.auto()
    TIMC_IRGP = enum.auto()
    # pseudo labels
    INFILEVER = enum.auto()
    DONTMATCH = enum.auto()
    LASTONE = enum.auto()


# record type masks: one bit pair for OBS files, one for NAV files
NAP = 0x00  # not applicable
OBL = 0x01  # obligatory
OPT = 0x02  # optional
MSK = 0x03
OBSNAP = NAP
OBSOBL = OBL
OBSOPT = OPT
OBSMSK = MSK
NAVNAP = NAP << 2
NAVOBL = OBL << 2
NAVOPT = OPT << 2
NAVMSK = MSK << 2

V210 = RinexVersion.V210
V304 = RinexVersion.V304
VALL = RinexVersion.VALL


class LabelDef(T.NamedTuple):
    label: Label
    text: str
    version: RinexVersion
    mask: int


# declaration order is also the order header records are printed
LABELS: tuple[LabelDef, ...] = (
    LabelDef(Label.VERSION, 'RINEX VERSION / TYPE', VALL, OBSOBL | NAVOBL),
    LabelDef(Label.RUNBY, 'PGM / RUN BY / DATE', VALL, OBSOBL | NAVOBL),
    LabelDef(Label.COMM, 'COMMENT', VALL, OBSOPT | NAVOPT),
    LabelDef(Label.MRKNAME, 'MARKER NAME', VALL, OBSOBL | NAVNAP),
    LabelDef(Label.MRKNUMBER, 'MARKER NUMBER', VALL, OBSOPT | NAVNAP),
    LabelDef(Label.MRKTYPE, 'MARKER TYPE', VALL, OBSOPT | NAVNAP),
    LabelDef(Label.AGENCY, 'OBSERVER / AGENCY', VALL, OBSOBL | NAVNAP),
    LabelDef(Label.RECEIVER, 'REC # / TYPE / VERS', VALL, OBSOBL | NAVNAP),
    LabelDef(Label.ANTTYPE, 'ANT # / TYPE', VALL, OBSOBL | NAVNAP),
    LabelDef(Label.APPXYZ, 'APPROX POSITION XYZ', VALL, OBSOBL | NAVNAP),
    LabelDef(Label.ANTHEN, 'ANTENNA: DELTA H/E/N', VALL, OBSOBL | NAVNAP),
    LabelDef(Label.ANTXYZ, 'ANTENNA: DELTA X/Y/Z', V304, OBSOPT | NAVNAP),
    LabelDef(Label.ANTPHC, 'ANTENNA: PHASECENTER', V304, OBSOPT | NAVNAP),
    LabelDef(Label.ANTBS, 'ANTENNA: B.SIGHT XYZ', V304, OBSOPT | NAVNAP),
    LabelDef(Label.ANTZDAZI, 'ANTENNA: ZERODIR AZI', V304, OBSOPT | NAVNAP),
    LabelDef(Label.ANTZDXYZ, 'ANTENNA: ZERODIR XYZ', V304, OBSOPT | NAVNAP),
    LabelDef(Label.COFM, 'CENTER OF MASS: XYZ', V304, OBSOPT | NAVNAP),
    LabelDef(Label.WVLEN, 'WAVELENGTH FACT L1/2', V210, OBSOBL | NAVNAP),
    LabelDef(Label.TOBS, '# / TYPES OF OBSERV', V210, OBSOBL | NAVNAP),
    LabelDef(Label.SYS, 'SYS / # / OBS TYPES', V304, OBSOBL | NAVNAP),
    LabelDef(Label.SIGU, 'SIGNAL STRENGTH UNIT', V304, OBSOPT | NAVNAP),
    LabelDef(Label.INT, 'INTERVAL', VALL, OBSOPT | NAVNAP),
    LabelDef(Label.TOFO, 'TIME OF FIRST OBS', VALL, OBSOBL | NAVNAP),
    LabelDef(Label.TOLO, 'TIME OF LAST OBS', VALL, OBSOPT | NAVNAP),
    LabelDef(Label.CLKOFFS, 'RCV CLOCK OFFS APPL', VALL, OBSOPT | NAVNAP),
    LabelDef(Label.DCBS, 'SYS / DCBS APPLIED', V304, OBSOPT | NAVNAP),
    LabelDef(Label.PCVS, 'SYS / PCVS APPLIED', V304, OBSOPT | NAVNAP),
    LabelDef(Label.SCALE, 'SYS / SCALE FACTOR', V304, OBSOPT | NAVNAP),
    LabelDef(Label.PHSH, 'SYS / PHASE SHIFT', V304, OBSOPT | NAVNAP),
    LabelDef(Label.GLSLT, 'GLONASS SLOT / FRQ #', V304, OBSOPT | NAVNAP),
    LabelDef(Label.GLPHS, 'GLONASS COD/PHS/BIS', V304, OBSOPT | NAVNAP),
    LabelDef(Label.SATS, '# OF SATELLITES', VALL, OBSOPT | NAVNAP),
    LabelDef(Label.PRNOBS, 'PRN / # OF OBS', VALL, OBSOPT | NAVNAP),
    LabelDef(Label.IONA, 'ION ALPHA', V210, OBSNAP | NAVOPT),
    LabelDef(Label.IONB, 'ION BETA', V210, OBSNAP | NAVOPT),
    LabelDef(Label.IONC, 'IONOSPHERIC CORR', V304, OBSNAP | NAVOPT),
    LabelDef(Label.DUTC, 'DELTA-UTC: A0,A1,T,W', V210, OBSNAP | NAVOPT),
    LabelDef(Label.CORRT, 'CORR TO SYSTEM TIME', V210, OBSNAP | NAVOPT),
    LabelDef(Label.GEOT, 'D-UTC A0,A1,T,W,S,U', V210, OBSNAP | NAVOPT),
    LabelDef(Label.TIMC, 'TIME SYSTEM CORR', V304, OBSNAP | NAVOPT),
    LabelDef(Label.LEAP, 'LEAP SECONDS', VALL, OBSOPT | NAVOPT),
    LabelDef(Label.EOH, 'END OF HEADER', VALL, OBSOBL | NAVOBL),
)

LABEL_DEF = {d.label: d for d in LABELS}

# correction kinds: label -> 4 character RINEX designator
IONO_KINDS = {
    Label.IONC_GAL: 'GAL',
    Label.IONC_GPSA: 'GPSA',
    Label.IONC_GPSB: 'GPSB',
    Label.IONC_QZSA: 'QZSA',
    Label.IONC_QZSB: 'QZSB',
    Label.IONC_BDSA: 'BDSA',
    Label.IONC_BDSB: 'BDSB',
    Label.IONC_IRNA: 'IRNA',
    Label.IONC_IRNB: 'IRNB',
}

TIME_KINDS = {
    Label.TIMC_GPUT: 'GPUT',
    Label.TIMC_GLUT: 'GLUT',
    Label.TIMC_GAUT: 'GAUT',
    Label.TIMC_BDUT: 'BDUT',
    Label.TIMC_QZUT: 'QZUT',
    Label.TIMC_IRUT: 'IRUT',
    Label.TIMC_SBUT: 'SBUT',
    Label.TIMC_GLGP: 'GLGP',
    Label.TIMC_GAGP: 'GAGP',
    Label.TIMC_BDGP: 'BDGP',
    Label.TIMC_QZGP: 'QZGP',
    Label.TIMC_IRGP: 'IRGP',
}

# V2 labels that hold exactly one kind of correction
V2_CORRECTION = {
    Label.IONA: Label.IONC_GPSA,
    Label.IONB: Label.IONC_GPSB,
    Label.DUTC: Label.TIMC_GPUT,
    Label.CORRT: Label.TIMC_GLUT,
    Label.GEOT: Label.TIMC_SBUT,
}

"""
observable codes in RINEX V3 having an equivalent in RINEX V2.
Both tables have the same size, pairs share the index.
"""
V3_OBS_TYPES = ('C1C', 'L1C', 'D1C', 'S1C', 'C1P', 'C2P', 'L2P', 'D2P', 'S2P')
V2_OBS_TYPES = ('C1', 'L1', 'D1', 'S1', 'P1', 'P2', 'L2', 'D2', 'S2')


class SysDescript(T.NamedTuple):
    system: str
    time: str  # time system designator in header records
    name: str


SYSTEMS = {
    'G': SysDescript('G', 'GPS', 'GPS'),
    'R': SysDescript('R', 'GLO', 'GLONASS'),
    'E': SysDescript('E', 'GAL', 'GALILEO'),
    'C': SysDescript('C', 'BDT', 'BEIDOU'),
    'J': SysDescript('J', 'QZS', 'QZSS'),
    'S': SysDescript('S', 'SBS', 'SBAS'),
    'I': SysDescript('I', 'IRN', 'IRNSS'),
    'M': SysDescript('M', '', 'MIXED'),
}


def v3_to_v2(code: str) -> str | None:
    """V3 three character observable code to its V2 equivalent, None if it has none"""
    try:
        return V2_OBS_TYPES[V3_OBS_TYPES.index(code)]
    except ValueError:
        return None


def v2_to_v3(code: str) -> str | None:
    try:
        return V3_OBS_TYPES[V2_OBS_TYPES.index(code)]
    except ValueError:
        return None


def label_text(label: Label) -> str:
    if label in LABEL_DEF:
        return LABEL_DEF[label].text
    if label in IONO_KINDS:
        return IONO_KINDS[label]
    if label in TIME_KINDS:
        return TIME_KINDS[label]
    return label.name


def in_version(label: Label, version: RinexVersion) -> bool:
    """True if the label is defined for the given version"""
    d = LABEL_DEF.get(label)
    if d is None:
        return False
    return d.version in (RinexVersion.VALL, version)


def time_designator(system: str) -> str:
    try:
        return SYSTEMS[system].time
    except KeyError:
        return ''


def time_system(designator: str) -> str:
    """time system designator (GPS, GLO, ...) to system identifier"""
    designator = designator.strip()
    for s in SYSTEMS.values():
        if s.time and s.time == designator:
            return s.system
    if designator == 'BDS':
        return 'C'
    return ' '
