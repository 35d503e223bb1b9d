"""
Header record payloads.

Each header label stores one kind of payload; LABEL_CATEGORY is the static
label -> payload type table checked by RinexData.set_hdln_data / get_hdln_data
before any storage is touched.
"""

from __future__ import annotations
import typing as T

from .labels import Label


class VersionType(T.NamedTuple):
    file_type: str = 'O'  # O, N; V2 nav: N (GPS), G (GLONASS), H (GEO)
    system: str = 'M'
    version: float = 0.0


class ProgramRunBy(T.NamedTuple):
    program: str
    run_by: str = ''
    date: str = ''


class Comment(T.NamedTuple):
    text: str


class Text(T.NamedTuple):
    value: str


class ObserverAgency(T.NamedTuple):
    observer: str
    agency: str = ''


class Receiver(T.NamedTuple):
    number: str
    type: str = ''
    version: str = ''


class Antenna(T.NamedTuple):
    number: str
    type: str = ''


class Triple(T.NamedTuple):
    x: float
    y: float = 0.0
    z: float = 0.0


class Scalar(T.NamedTuple):
    value: float


class Count(T.NamedTuple):
    value: int


class PhaseCenter(T.NamedTuple):
    system: str
    code: str
    north: float = 0.0  # or X
    east: float = 0.0  # or Y
    up: float = 0.0  # or Z


class WavelengthFactor(T.NamedTuple):
    l1: int
    l2: int = 1
    satellites: tuple[str, ...] = ()  # empty for the default factors


class ObsTypes(T.NamedTuple):
    system: str
    types: tuple[str, ...]


class ObsTime(T.NamedTuple):
    week: int
    tow: float
    time_system: str = 'G'


class CorrectionApplied(T.NamedTuple):
    """SYS / DCBS APPLIED, SYS / PCVS APPLIED"""
    system: str
    program: str
    source: str = ''


class ScaleFactor(T.NamedTuple):
    system: str
    factor: int
    types: tuple[str, ...] = ()  # empty: all observable types


class PhaseShift(T.NamedTuple):
    system: str
    code: str
    correction: float = 0.0
    satellites: tuple[str, ...] = ()  # empty: all satellites of the system


class GlonassSlot(T.NamedTuple):
    slot: int
    frequency: int


class GlonassBias(T.NamedTuple):
    code: str
    bias: float


class LeapSeconds(T.NamedTuple):
    seconds: int
    delta: int = 0
    week: int = 0
    day: int = 0
    system: str = ''


class PrnObsCount(T.NamedTuple):
    system: str
    prn: int
    counts: tuple[int, ...]


class Correction(T.NamedTuple):
    """
    Ionospheric or time system correction.

    kind: one of Label.IONC_xxx or Label.TIMC_xxx
    params: iono: alpha0..alpha3 / beta0..beta3 / ai0..ai2
            time: a0, a1, reference time (s of week), reference week
    time_mark: iono: transmission time (s of day); time: UTC identifier
    source: satellite number (< 100), SBAS PRN, or 1000 + SBAS provider index
    """
    kind: Label
    params: tuple[float, ...] = (0.0, 0.0, 0.0, 0.0)
    time_mark: int = 0
    source: int = 0


LABEL_CATEGORY: dict[Label, type] = {
    Label.VERSION: VersionType,
    Label.RUNBY: ProgramRunBy,
    Label.COMM: Comment,
    Label.MRKNAME: Text,
    Label.MRKNUMBER: Text,
    Label.MRKTYPE: Text,
    Label.AGENCY: ObserverAgency,
    Label.RECEIVER: Receiver,
    Label.ANTTYPE: Antenna,
    Label.APPXYZ: Triple,
    Label.ANTHEN: Triple,
    Label.ANTXYZ: Triple,
    Label.ANTPHC: PhaseCenter,
    Label.ANTBS: Triple,
    Label.ANTZDAZI: Scalar,
    Label.ANTZDXYZ: Triple,
    Label.COFM: Triple,
    Label.WVLEN: WavelengthFactor,
    Label.TOBS: ObsTypes,
    Label.SYS: ObsTypes,
    Label.SIGU: Text,
    Label.INT: Scalar,
    Label.TOFO: ObsTime,
    Label.TOLO: ObsTime,
    Label.CLKOFFS: Count,
    Label.DCBS: CorrectionApplied,
    Label.PCVS: CorrectionApplied,
    Label.SCALE: ScaleFactor,
    Label.PHSH: PhaseShift,
    Label.GLSLT: GlonassSlot,
    Label.GLPHS: GlonassBias,
    Label.SATS: Count,
    Label.PRNOBS: PrnObsCount,
    Label.IONA: Correction,
    Label.IONB: Correction,
    Label.IONC: Correction,
    Label.DUTC: Correction,
    Label.CORRT: Correction,
    Label.GEOT: Correction,
    Label.TIMC: Correction,
    Label.LEAP: LeapSeconds,
}

PAYLOADS = tuple(set(LABEL_CATEGORY.values()))

# labels whose records accumulate (several lines / entries allowed)
MULTI_LABELS = (Label.WVLEN, Label.DCBS, Label.PCVS, Label.SCALE, Label.PHSH,
                Label.GLSLT, Label.GLPHS, Label.PRNOBS)


CORRECTION_LABELS = (Label.IONA, Label.IONB, Label.IONC,
                     Label.DUTC, Label.CORRT, Label.GEOT, Label.TIMC)
