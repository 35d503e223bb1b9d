"""
RinexData: header records, observable catalog and epoch data of one RINEX
file, with the operations to fill them from a receiver or a RINEX file and to
print them as RINEX V2.10 or V3.04.
"""

from __future__ import annotations
import typing as T
import logging
from datetime import datetime, timezone

from .labels import (Label, RinexVersion, LABELS, LABEL_DEF, IONO_KINDS, TIME_KINDS,
                     V2_CORRECTION, V3_OBS_TYPES, VERSION_NUMBER, OBSMSK, NAVMSK, OBSOBL, NAVOBL, NAP,
                     label_text, in_version, v2_to_v3, v3_to_v2)
from .header import (LABEL_CATEGORY, PAYLOADS, MULTI_LABELS, CORRECTION_LABELS,
                     VersionType, ProgramRunBy, Comment, WavelengthFactor, ObsTypes, Correction)
from .catalog import GNSSSystem, KNOWN_SYSTEMS, parse_sat, parse_obs_token
from .epoch import (EpochStatus, SatObsData, ObsData, SatNavData, MSG_MISMATCH_CODES, broadcast_orbit,
                    nav_tag_to_datetime, nav_layout)
from .common import (MAXOBSVAL, MINOBSVAL, WEEK_SECONDS, gps_to_datetime)
from .headerio import FORMATTERS, PARSERS, header_line
from . import obs2, obs3, nav2, nav3

MSG_WRONG_ARGS = 'Internal error. Wrong argument types in RINEX label identifier='

EVENT_NAMES = {2: 'Kinematic event', 3: 'New site occupation event',
               4: 'Header information event', 5: 'External event'}

V2_NAV_SYSTEMS = {'G': 'N', 'R': 'G', 'S': 'H'}


class LabelRecord:
    """a header label entry: print position, data flag, and the text of COMMENT entries"""

    __slots__ = ('label', 'has_data', 'comment')

    def __init__(self, label: Label, has_data: bool = False, comment: str | None = None):
        self.label = label
        self.has_data = has_data
        self.comment = comment

    def __repr__(self) -> str:
        return f'LabelRecord({self.label.name}, {self.has_data})'


class RinexData:
    """
    In-memory model of a RINEX observation or navigation file.

    Parameters
    ----------

    version : RinexVersion
        version used to print (V210 or V304). Files of either version can be read.
    program, run_by : str, optional
        values for the PGM / RUN BY / DATE record
    logger : logging.Logger, optional
        where messages go; the "torinex" logger when not given
    """

    def __init__(self, version: RinexVersion = RinexVersion.V304,
                 program: str | None = None, run_by: str | None = None,
                 logger: logging.Logger | None = None):
        if version not in VERSION_NUMBER:
            raise ValueError(f'RINEX version {version!r} cannot be printed')

        self.version = RinexVersion(version)
        self.log = logger if logger is not None else logging.getLogger('torinex')

        self.in_file_version = RinexVersion.VTBD
        self.in_file_number = 0.0
        self.in_file_type = ' '

        self._records = [LabelRecord(d.label) for d in LABELS if d.label != Label.COMM]
        self._label_iter = 0
        self._last_set = -1
        self._values: dict[Label, T.Any] = {}
        self._lists: dict[Label, list] = {}
        self._declared: dict[T.Any, int] = {}
        self.corrections: list[Correction] = []

        self.systems: list[GNSSSystem] = []
        self._v2_types: list[str | None] = []
        self._in_obs_order: dict[str, list[int]] = {}
        self._last_sys = ''
        self.nav_system: str | None = None
        self._lookahead: str | None = None  # line read ahead and handed back

        self.epoch_week = 0
        self.epoch_tow = 0.0
        self.epoch_bias = 0.0
        self.epoch_flag = 0
        self.epoch_time_tag = 0.0
        self._epoch_has_date = False
        self._has_epoch = False
        self.epoch_obs: list[SatObsData] = []
        self.epoch_nav: list[SatNavData] = []

        self._filter_sats: dict[str, list[int]] = {}
        self._filter_obs: list[tuple[str | None, str]] = []
        self._tlim: tuple[datetime | None, datetime | None] = (None, None)

        if program is not None:
            self._store(Label.RUNBY, ProgramRunBy(program, run_by or ''))
        if self.version == RinexVersion.V210:
            self._store(Label.WVLEN, WavelengthFactor(1, 1))
        self._last_set = -1

    # %% label registry

    def _index(self, label: Label) -> int:
        for i, r in enumerate(self._records):
            if r.label == label:
                return i
        raise LookupError(f'label {label.name} not in the label table')

    def _mark(self, label: Label) -> None:
        i = self._index(label)
        self._records[i].has_data = True
        self._last_set = i

    def has_data(self, label: Label) -> bool:
        return any(r.has_data for r in self._records if r.label == label)

    def lbl_to_id(self, text: str, version: RinexVersion | None = None) -> Label:
        """
        label identifier of the text in columns 61-80 of a header line.
        DONTMATCH if the label exists only in the other version, NOLABEL if unknown.
        """
        if version is None:
            version = self.version
        text = text.strip()
        for d in LABELS:
            if d.text == text:
                return d.label if in_version(d.label, version) else Label.DONTMATCH
        return Label.NOLABEL

    def id_to_lbl(self, label: Label) -> str:
        return label_text(label)

    def first_label_id(self) -> Label:
        self._label_iter = 0
        return self.next_label_id()

    def next_label_id(self) -> Label:
        """next label having data, in print order; LASTONE after the last one"""
        while self._label_iter < len(self._records):
            r = self._records[self._label_iter]
            self._label_iter += 1
            if r.has_data:
                return r.label
        return Label.LASTONE

    def clear_header_data(self) -> None:
        """
        Forget all header records. The observable catalog is kept: epochs
        following a header-information event are still decoded with it.
        """
        self._records = [r for r in self._records if r.label != Label.COMM]
        for r in self._records:
            r.has_data = False
        self._values.clear()
        self._lists.clear()
        self._declared.clear()
        self.corrections.clear()
        self._last_set = -1
        self._label_iter = 0

    # %% header store

    def set_hdln_data(self, label: Label, *args, **kwargs) -> bool:
        """
        store the payload of a header record

        Parameters
        ----------

        label : Label
            header label, or an IONC_xxx / TIMC_xxx correction kind
        args, kwargs:
            a payload instance of the label category, or the arguments to build it.
            For IONA, IONB, DUTC, CORRT, GEOT and correction kinds the correction
            kind is implied and is not given.

        Returns
        -------

        ok : bool
            False, with nothing stored, for arguments not matching the label category
            or labels not defined in the version of this object
        """
        if label in IONO_KINDS or label in TIME_KINDS:
            kind = label
            label = Label.IONC if label in IONO_KINDS else Label.TIMC
            args = (kind,) + args
        elif label in V2_CORRECTION and not (args and isinstance(args[0], Correction)):
            args = (V2_CORRECTION[label],) + args

        cat = LABEL_CATEGORY.get(label)
        if cat is None:
            self.log.error(f'{MSG_WRONG_ARGS}{label_text(label)}')
            return False
        if not in_version(label, self.version):
            self.log.error(f'Label {label_text(label)} not defined in RINEX V{VERSION_NUMBER[self.version]:.2f}')
            return False

        if len(args) == 1 and not kwargs and isinstance(args[0], PAYLOADS):
            payload = args[0]
            if not isinstance(payload, cat):
                self.log.error(f'{MSG_WRONG_ARGS}{label_text(label)}')
                return False
        else:
            try:
                payload = cat(*args, **kwargs)
            except TypeError:
                self.log.error(f'{MSG_WRONG_ARGS}{label_text(label)}')
                return False

        if label == Label.IONC and payload.kind not in IONO_KINDS or \
                label == Label.TIMC and payload.kind not in TIME_KINDS or \
                label in V2_CORRECTION and payload.kind != V2_CORRECTION[label]:
            self.log.error(f'{MSG_WRONG_ARGS}{label_text(label)}')
            return False

        try:
            self._store(label, payload)
        except ValueError as e:
            self.log.error(f'{label_text(label)}: {e}')
            return False

        return True

    def _store(self, label: Label, payload: T.Any) -> None:
        """
        save a payload, no version check. Raises ValueError for invalid contents
        leaving the stored data unchanged.
        """
        if label == Label.COMM:
            i = max(self._last_set + 1, self._index(Label.RUNBY) + 1)
            self._records.insert(i, LabelRecord(Label.COMM, True, payload.text))
            self._last_set = i
            return
        elif label in CORRECTION_LABELS:
            self.corrections.append(payload)
            for v2, kind in V2_CORRECTION.items():
                if kind == payload.kind:
                    self._mark(v2)
            self._mark(Label.IONC if payload.kind in IONO_KINDS else Label.TIMC)
            if label != Label.IONC and label != Label.TIMC:
                self._mark(label)
            return
        elif label == Label.TOBS:
            self._declared.pop(Label.TOBS, None)
            self._set_v2_obs_types(payload.types, continuation=False)
        elif label == Label.SYS:
            self._declared.pop(payload.system, None)
            self._set_sys_obs_types(payload.system, payload.types, continuation=False)
        elif label in MULTI_LABELS:
            lst = self._lists.setdefault(label, [])
            if label == Label.WVLEN and not payload.satellites:
                lst[:] = [w for w in lst if w.satellites]
                lst.insert(0, payload)
            else:
                lst.append(payload)
        else:
            self._values[label] = payload

        self._mark(label)

    def _extend_last(self, label: Label, field: str, values: tuple) -> None:
        lst = self._lists.get(label)
        if not lst:
            raise ValueError('Continuation line not following a regular one')
        last = lst[-1]
        lst[-1] = last._replace(**{field: getattr(last, field) + tuple(values)})

    def get_hdln_data(self, label: Label, index: int = 0) -> T.Any:
        """
        payload stored for a header label, None if there is none.

        index selects among the records of multi-record labels (COMMENT,
        SYS / # / OBS TYPES, corrections, ...).
        INFILEVER gives the version of the last file read.
        """
        if label == Label.INFILEVER:
            return self.in_file_version

        found = self.get_hdln_records(label)
        return found[index] if 0 <= index < len(found) else None

    def get_hdln_records(self, label: Label) -> list:
        """all payloads stored for a header label, in print order"""
        if label in IONO_KINDS or label in TIME_KINDS:
            return [c for c in self.corrections if c.kind == label]
        if label not in LABEL_CATEGORY:
            self.log.error(f'{MSG_WRONG_ARGS}{label_text(label)}')
            return []
        if not in_version(label, self.version):
            self.log.error(f'Label {label_text(label)} not defined in RINEX V{VERSION_NUMBER[self.version]:.2f}')
            return []

        if label == Label.COMM:
            return [Comment(r.comment) for r in self._records if r.label == Label.COMM]
        elif label == Label.IONC:
            return [c for c in self.corrections if c.kind in IONO_KINDS]
        elif label == Label.TIMC:
            return [c for c in self.corrections if c.kind in TIME_KINDS]
        elif label in V2_CORRECTION:
            return [c for c in self.corrections if c.kind == V2_CORRECTION[label]]
        elif label == Label.TOBS:
            if not self.has_data(label):
                return []
            if self.systems:
                codes = [c for c in V3_OBS_TYPES if any(s.obs_types[s.index(c)].sel for s in self.systems)]
            else:
                codes = [c for c in self._v2_types if c]
            return [ObsTypes(' ', tuple(T.cast(str, v3_to_v2(c)) for c in codes))]
        elif label == Label.SYS:
            return [ObsTypes(s.system, tuple(s.selected_codes())) for s in self.systems]
        elif label in MULTI_LABELS:
            return list(self._lists.get(label, []))
        elif label in self._values:
            return [self._values[label]]
        return []

    # %% observable catalog

    def _system(self, system: str) -> GNSSSystem | None:
        for s in self.systems:
            if s.system == system:
                return s
        return None

    def _sys_index(self, system: str) -> int:
        for i, s in enumerate(self.systems):
            if s.system == system:
                return i
        return -1

    def _add_system(self, system: str, codes: T.Iterable[str]) -> int:
        if system not in KNOWN_SYSTEMS:
            raise ValueError(f'Satellite system code unknown={system}')
        s = GNSSSystem(system, codes)
        i = self._sys_index(system)
        if i < 0:
            self.systems.append(s)
            i = len(self.systems) - 1
        else:
            self.systems[i] = s
        self._apply_filter(s)
        return i

    def _set_v2_obs_types(self, codes: T.Sequence[str], continuation: bool) -> None:
        v3: list[str | None] = []
        for c in codes:
            t = v2_to_v3(c) if len(c) == 2 else c
            if t is None:
                self.log.warning(f'Observable type {c} has no RINEX V3 equivalent; ignored')
            v3.append(t)

        if continuation:
            if Label.TOBS not in self._declared:
                raise ValueError('Continuation line not following a regular one')
            self._v2_types.extend(v3)
        else:
            self._v2_types = v3

        if len(self._v2_types) > self._declared.get(Label.TOBS, len(self._v2_types)):
            raise ValueError(MSG_MISMATCH_CODES)

        for s in self.systems:
            for t in v3:
                if t:
                    s.select(t)
        self._mark(Label.SYS)
        self._mark(Label.TOBS)

    def _set_sys_obs_types(self, system: str, codes: T.Sequence[str], continuation: bool) -> None:
        if continuation:
            s = self._system(self._last_sys)
            if s is None:
                raise ValueError('Continuation line not following a regular one')
            self._in_obs_order[s.system].extend(s.select(c) for c in codes)
            if len(self._in_obs_order[s.system]) > self._declared.get(s.system, 999):
                raise ValueError(MSG_MISMATCH_CODES)
        else:
            i = self._add_system(system, codes)
            s = self.systems[i]
            self._in_obs_order[system] = [s.index(c) for c in codes]
            self._last_sys = system

        self._mark(Label.TOBS)
        self._mark(Label.SYS)

    def _v2_system(self, system: str) -> GNSSSystem:
        """catalog entry of a system found in a V2 file, created with the file types"""
        s = self._system(system)
        if s is None:
            s = self.systems[self._add_system(system, [c for c in self._v2_types if c])]
        return s

    def _update_printable(self) -> None:
        for s in self.systems:
            self._apply_filter(s)
            s.set_printable(self.version)

    def v2_printable_codes(self) -> list[str]:
        """V3 codes printed in a V2 file, in V2 table order"""
        if not self.systems:
            return [c for c in V3_OBS_TYPES if c in self._v2_types]
        return [c for c in V3_OBS_TYPES
                if any(s.selected and s.obs_types[s.index(c)].prt for s in self.systems)]

    # %% epoch data

    def set_epoch_time(self, week: int, tow: float, bias: float = 0.0, flag: int = 0) -> float:
        """
        start a new epoch, forgetting observation and navigation data of the previous one

        Returns
        -------

        seconds : float
            the epoch time as seconds from the GPS epoch
        """
        self.epoch_week = week
        self.epoch_tow = tow
        self.epoch_bias = bias
        self.epoch_flag = flag
        self.epoch_time_tag = tow
        self._epoch_has_date = True
        self._has_epoch = True
        self.epoch_obs.clear()
        self.epoch_nav.clear()
        return week * WEEK_SECONDS + tow

    def _set_event(self, flag: int) -> None:
        """special event epoch without date"""
        self.epoch_flag = flag
        self.epoch_bias = 0.0
        self._epoch_has_date = False
        self.epoch_obs.clear()

    @property
    def epoch_has_date(self) -> bool:
        """False for special event epochs printed without date"""
        return self._epoch_has_date

    def get_epoch_time(self) -> tuple[int, float, float, int]:
        """week, seconds of week, clock bias, flag"""
        return self.epoch_week, self.epoch_tow, self.epoch_bias, self.epoch_flag

    def save_obs_data(self, system: str, satellite: int, obs_type: str, value: float,
                      lli: int = 0, ssi: int = 0, time_tag: float | None = None) -> bool:
        """
        add an observation to the current epoch.

        A time_tag different from the one of the stored data starts a new epoch.
        Systems and observable types not yet in the catalog are added.
        """
        if not MINOBSVAL <= value <= MAXOBSVAL:
            self.log.error(f'Observable value out of range: {system}{satellite:02d} {obs_type} {value}')
            return False
        if system not in KNOWN_SYSTEMS:
            self.log.error(f'Satellite system code unknown={system}')
            return False
        if len(obs_type) == 2:
            code = v2_to_v3(obs_type)
            if code is None:
                self.log.error(f'Observable type {obs_type} unknown')
                return False
            obs_type = code
        elif len(obs_type) != 3:
            self.log.error(f'Observable type {obs_type} unknown')
            return False

        if time_tag is not None and time_tag != self.epoch_time_tag:
            if self.epoch_obs:
                self.log.debug('New epoch.')
                self.epoch_obs.clear()
            self.epoch_time_tag = time_tag

        i = self._sys_index(system)
        if i < 0:
            i = self._add_system(system, [obs_type])
        s = self.systems[i]
        j = s.index(obs_type)
        if j < 0 or not s.obs_types[j].decl:
            j = s.select(obs_type)
            s.obs_types[j].sel = self._obs_passes(system, obs_type)
        self.epoch_obs.append(SatObsData(i, satellite, j, value, lli, ssi))
        return True

    def get_obs_data(self, index: int) -> ObsData | None:
        if not 0 <= index < len(self.epoch_obs):
            return None
        r = self.epoch_obs[index]
        s = self.systems[r.sys_index]
        return ObsData(s.system, r.satellite, s.obs_types[r.obs_index].code, r.value, r.lli, r.ssi)

    def clear_obs_data(self) -> None:
        self.epoch_obs.clear()

    def save_nav_data(self, system: str, satellite: int, bo: T.Any, time_tag: float) -> bool:
        """
        add the broadcast orbit of a satellite.

        bo: up to 8 lines of 4 coefficients, the first line being the clock bias, drift and drift rate
        """
        try:
            nav_layout(system)
            orbit = broadcast_orbit(bo)
        except ValueError as e:
            self.log.error(str(e))
            return False

        rec = SatNavData(time_tag, system, satellite, orbit)
        if any(r.key() == rec.key() for r in self.epoch_nav):
            self.log.warning(f'Navigation data for {system}{satellite:02d} at {time_tag} ALREADY EXIST')
            return False

        self.epoch_nav.append(rec)
        return True

    def get_nav_data(self, index: int) -> SatNavData | None:
        if not 0 <= index < len(self.epoch_nav):
            return None
        return self.epoch_nav[index]

    def clear_nav_data(self) -> None:
        self.epoch_nav.clear()

    def has_nav_epochs(self, system: str | None = None) -> bool:
        if system in (None, 'M'):
            return bool(self.epoch_nav)
        return any(r.system == system for r in self.epoch_nav)

    # %% filtering

    def set_filter(self, sel_sats: T.Iterable[str] | str = (), sel_obs: T.Iterable[str] | str = (),
                   tstart: datetime | None = None, tend: datetime | None = None) -> bool:
        """
        select data to keep

        Parameters
        ----------

        sel_sats : satellites (G05) or whole systems (G); empty selects all
        sel_obs : observables GC1C (system G), C1C (any system) or C1 (V2 code); empty selects all
        tstart, tend : datetime, optional
            time window, GPS time

        Returns
        -------

        ok : bool
            False, with the previous filter kept, if a token is not valid
        """
        if isinstance(sel_sats, str):
            sel_sats = sel_sats.replace(',', ' ').split()
        if isinstance(sel_obs, str):
            sel_obs = sel_obs.replace(',', ' ').split()

        sats: dict[str, list[int]] = {}
        obs: list[tuple[str | None, str]] = []
        try:
            for tok in sel_sats:
                system, prn = parse_sat(tok.strip())
                prns = sats.setdefault(system, [])
                if prn:
                    prns.append(prn)
            for tok in sel_obs:
                obs.append(parse_obs_token(tok))
        except ValueError as e:
            self.log.error(f'Filter not set: {e}')
            return False
        if tstart is not None and tend is not None and tend < tstart:
            self.log.error('Filter not set: stop time must be after start time')
            return False

        self._filter_sats = sats
        self._filter_obs = obs
        self._tlim = (tstart, tend)
        self._update_printable()
        return True

    def _apply_filter(self, s: GNSSSystem) -> None:
        if self._filter_sats:
            s.selected = s.system in self._filter_sats
            s.sel_sats = list(self._filter_sats.get(s.system, []))
        else:
            s.selected = True
            s.sel_sats = []
        for o in s.obs_types:
            o.sel = o.decl and self._obs_passes(s.system, o.code)

    def _obs_passes(self, system: str, code: str) -> bool:
        return not self._filter_obs or any(c == code and sys in (None, system) for sys, c in self._filter_obs)

    def _in_window(self, t: datetime) -> bool:
        tstart, tend = self._tlim
        return (tstart is None or t >= tstart) and (tend is None or t <= tend)

    def is_sat_selected(self, system: str, satellite: int) -> bool:
        s = self._system(system)
        if s is not None:
            return s.is_sat_selected(satellite)
        if not self._filter_sats:
            return True
        return system in self._filter_sats and \
            (not self._filter_sats[system] or satellite in self._filter_sats[system])

    def filter_obs_data(self, remove_not_printable: bool = False) -> bool:
        """
        Drop observations of deselected systems, satellites and observable types,
        and sort the rest by system, satellite, observable.

        Returns
        -------

        ok : bool
            True if the epoch is in the time window and has data to print,
            or is a special event
        """
        self._update_printable()

        if self._epoch_has_date and not self._in_window(gps_to_datetime(self.epoch_week, self.epoch_tow)):
            self.epoch_obs.clear()
            return False

        keep = []
        for r in self.epoch_obs:
            s = self.systems[r.sys_index]
            o = s.obs_types[r.obs_index]
            if not s.is_sat_selected(r.satellite) or not o.sel:
                continue
            if remove_not_printable and not o.prt:
                continue
            keep.append(r)
        keep.sort(key=SatObsData.key)
        self.epoch_obs = keep

        if 2 <= self.epoch_flag <= 5:
            return True
        return bool(keep)

    def filter_nav_data(self) -> bool:
        """drop navigation records of deselected satellites or out of the time window, and sort the rest"""
        keep = [r for r in self.epoch_nav
                if self.is_sat_selected(r.system, r.satellite)
                and self._in_window(nav_tag_to_datetime(r.system, r.time_tag))]
        keep.sort(key=SatNavData.key)
        self.epoch_nav = keep
        return bool(keep)

    # %% file names

    def _start_time(self) -> datetime | None:
        tofo = self._values.get(Label.TOFO)
        if tofo is not None:
            return gps_to_datetime(tofo.week, tofo.tow)
        if self._has_epoch and self._epoch_has_date:
            return gps_to_datetime(self.epoch_week, self.epoch_tow)
        return None

    def _file_system(self) -> str:
        sel = [s.system for s in self.systems if s.selected]
        return sel[0] if len(sel) == 1 else 'M'

    def _filename(self, prefix: str, country: str, t: datetime | None, kind: str) -> str | None:
        if t is None:
            self.log.error('Output file name cannot be set: no start time')
            return None

        doy = t.timetuple().tm_yday
        if self.version == RinexVersion.V210:
            return f'{prefix[:4].lower():_<4}{doy:03d}0.{t.year % 100:02d}{kind[-1]}'

        interval = self._values.get(Label.INT)
        if interval is None or interval.value <= 0:
            freq = '00U'
        elif interval.value < 100:
            freq = f'{round(interval.value):02d}S'
        else:
            freq = f'{round(interval.value / 60):02d}M'

        return (f'{prefix[:4].upper():_<4}00{country[:3].upper():_<3}_R_'
                f'{t.year:04d}{doy:03d}{t.hour:02d}{t.minute:02d}_00U_{freq}_{kind}.rnx')

    def get_obs_filename(self, prefix: str, country: str = '---') -> str | None:
        """
        RINEX file name for observation data starting at TIME OF FIRST OBS,
        or at the current epoch when it is not set.
        V2: ssssddd0.yyO   V3: SSSS00CCC_R_YYYYDDDHHMM_00U_FFU_MO.rnx
        """
        self._update_printable()
        return self._filename(prefix, country, self._start_time(), f'{self._file_system()}O')

    def get_nav_filename(self, prefix: str, country: str = '---') -> str | None:
        t = None
        system = self._nav_file_system()
        if self.epoch_nav:
            r = min(self.epoch_nav, key=SatNavData.key)
            t = nav_tag_to_datetime(r.system, r.time_tag)
        else:
            t = self._start_time()

        if self.version == RinexVersion.V210:
            return self._filename(prefix, country, t, V2_NAV_SYSTEMS.get(system, 'N'))
        return self._filename(prefix, country, t, f'{system}N')

    # %% printing

    def _stamp_runby(self) -> None:
        rb = self._values.get(Label.RUNBY, ProgramRunBy('torinex'))
        if not rb.date:
            now = datetime.now(timezone.utc)
            if self.version == RinexVersion.V210:
                date = now.strftime('%d-%b-%y %H:%M').upper()
            else:
                date = now.strftime('%Y%m%d %H%M%S UTC')
            rb = rb._replace(date=date)
        self._set_silently(Label.RUNBY, rb)

    def _set_silently(self, label: Label, payload: T.Any) -> None:
        """store a record generated at print time, leaving the comment position unchanged"""
        last = self._last_set
        self._store(label, payload)
        self._last_set = last

    def _header_lines(self, obs: bool, skip: tuple[Label, ...] = ()) -> list[str]:
        mask = OBSMSK if obs else NAVMSK
        lines = []
        for r in self._records:
            if not r.has_data or r.label in skip:
                continue
            d = LABEL_DEF[r.label]
            if not in_version(r.label, self.version) or d.mask & mask == NAP:
                continue
            if r.label == Label.COMM:
                lines.append(header_line(r.comment, Label.COMM))
                continue
            lines += [header_line(c, r.label) for c in FORMATTERS[r.label](self, r.label)]
        return lines

    def _missing_obligatory(self, obs: bool) -> list[Label]:
        mask, obl = (OBSMSK, OBSOBL) if obs else (NAVMSK, NAVOBL)
        return [d.label for d in LABELS
                if d.mask & mask == obl and in_version(d.label, self.version) and not self.has_data(d.label)]

    def print_obs_header(self, out: T.TextIO) -> bool:
        """
        print the observation file header.
        Fails, printing nothing, if an obligatory record has no data.
        """
        self._update_printable()
        self._set_silently(Label.VERSION, VersionType('O', self._file_system(), VERSION_NUMBER[self.version]))
        self._stamp_runby()
        if self.version == RinexVersion.V210 and not self._lists.get(Label.WVLEN):
            self._set_silently(Label.WVLEN, WavelengthFactor(1, 1))
        printable = any(s.selected and s.printable_codes() for s in self.systems)
        if self.version == RinexVersion.V210:
            printable = bool(self.v2_printable_codes())
        self._set_flag(Label.TOBS, printable)
        self._set_flag(Label.SYS, printable)
        self._set_flag(Label.EOH, True)

        missing = self._missing_obligatory(obs=True)
        if missing:
            for label in missing:
                self.log.error(f'Obligatory header label missing: {label_text(label)}')
            return False

        out.write('\n'.join(self._header_lines(obs=True)) + '\n')
        return True

    def _set_flag(self, label: Label, has_data: bool) -> None:
        self._records[self._index(label)].has_data = has_data

    def _event_lines(self) -> list[str]:
        """header records stored after clear_header_data, printed as special records"""
        return self._header_lines(obs=True, skip=(Label.VERSION, Label.RUNBY, Label.EOH))

    def print_obs_epoch(self, out: T.TextIO) -> bool:
        """print the current epoch: its observations, or the special records of an event"""
        self._update_printable()
        if self.version == RinexVersion.V210:
            return obs2.print_epoch(self, out)
        return obs3.print_epoch(self, out)

    def print_obs_eof(self, out: T.TextIO) -> None:
        """header information event with an END OF FILE comment"""
        mod = obs2 if self.version == RinexVersion.V210 else obs3
        mod.print_event(self, out, 4, [header_line('END OF FILE', Label.COMM)], with_date=False)

    def _nav_file_system(self) -> str:
        if self.version == RinexVersion.V210:
            if self.nav_system in V2_NAV_SYSTEMS:
                return self.nav_system
            for r in self.epoch_nav:
                if r.system in V2_NAV_SYSTEMS and self.is_sat_selected(r.system, r.satellite):
                    return r.system
            return 'G'

        if self.nav_system is not None and self.nav_system != 'M':
            if all(r.system == self.nav_system for r in self.epoch_nav):
                return self.nav_system
        systems = {r.system for r in self.epoch_nav if self.is_sat_selected(r.system, r.satellite)}
        return systems.pop() if len(systems) == 1 else 'M'

    def print_nav_header(self, out: T.TextIO) -> bool:
        system = self._nav_file_system()
        if self.version == RinexVersion.V210:
            vt = VersionType(V2_NAV_SYSTEMS[system], system, VERSION_NUMBER[self.version])
        else:
            vt = VersionType('N', system, VERSION_NUMBER[self.version])
        self._set_silently(Label.VERSION, vt)
        self._stamp_runby()
        self._set_flag(Label.EOH, True)

        missing = self._missing_obligatory(obs=False)
        if missing:
            for label in missing:
                self.log.error(f'Obligatory header label missing: {label_text(label)}')
            return False

        out.write('\n'.join(self._header_lines(obs=False)) + '\n')
        return True

    def print_nav_epochs(self, out: T.TextIO) -> bool:
        """print the stored navigation records of selected satellites"""
        if self.version == RinexVersion.V210:
            return nav2.print_epochs(self, out, self._nav_file_system())
        return nav3.print_epochs(self, out)

    # %% reading

    def _readline(self, f: T.TextIO) -> str:
        if self._lookahead is not None:
            ln, self._lookahead = self._lookahead, None
            return ln
        return f.readline()

    def _unread(self, line: str) -> None:
        """hand back a line belonging to the next epoch or record"""
        self._lookahead = line

    def _read_hdline(self, line: str, version: RinexVersion) -> Label:
        """parse one header line, storing its data. Returns the label found"""
        ln = line.rstrip('\r\n')
        label = self.lbl_to_id(ln[60:80], version)
        if label in (Label.NOLABEL, Label.DONTMATCH):
            self.log.warning(f'Unknown or version mismatched header label: {ln}')
            return label

        try:
            PARSERS[label](self, label, f'{ln[:60]:<60}')
        except (ValueError, IndexError) as e:
            self.log.warning(f'{label_text(label)}: {e}: {ln}')

        return label

    def read_rinex_header(self, f: T.TextIO) -> Label:
        """
        read header lines up to END OF HEADER, replacing the stored header and catalog

        Returns
        -------

        label : Label
            EOH when the header was read, LASTONE at end of file before END OF HEADER,
            NOLABEL if the first line is not a valid RINEX VERSION / TYPE
        """
        self.clear_header_data()
        self.systems.clear()
        self._v2_types = []
        self._in_obs_order.clear()
        self._last_sys = ''
        self.nav_system = None
        self._lookahead = None

        ln = self._readline(f)
        try:
            if ln[60:80].strip() != label_text(Label.VERSION):
                raise ValueError(f'not a RINEX VERSION / TYPE line: {ln.rstrip()}')
            PARSERS[Label.VERSION](self, Label.VERSION, f'{ln[:60]:<60}')
        except (ValueError, IndexError) as e:
            self.log.error(f'Cannot read RINEX file: {e}')
            return Label.NOLABEL

        vt = self._values[Label.VERSION]
        self.in_file_number = vt.version
        self.in_file_version = RinexVersion.V210 if vt.version < 3 else RinexVersion.V304
        self.in_file_type = vt.file_type
        if vt.file_type != 'O':
            self.nav_system = vt.system
        self.log.info(f'File processed as per V{vt.version:.2f}')

        while True:
            ln = self._readline(f)
            if not ln:
                break
            if not ln.strip():
                continue
            label = self._read_hdline(ln, self.in_file_version)
            if label == Label.EOH:
                self._end_of_header()
                return Label.EOH

        self.log.error('End of file before END OF HEADER')
        return Label.LASTONE

    def _end_of_header(self) -> None:
        if Label.TOBS in self._declared and self._declared[Label.TOBS] != len(self._v2_types):
            self.log.warning(f'{MSG_MISMATCH_CODES} in {label_text(Label.TOBS)}')
        for system, order in self._in_obs_order.items():
            if self._declared.get(system, len(order)) != len(order):
                self.log.warning(f'{MSG_MISMATCH_CODES} in {label_text(Label.SYS)} for {system}')

        if self.in_file_version == RinexVersion.V210 and self.in_file_type == 'O':
            system = self._values[Label.VERSION].system
            if system != 'M':
                systems = [system]
            else:
                systems = [p.system for p in self._lists.get(Label.PRNOBS, [])] or ['G', 'R', 'S', 'E']
            for system in dict.fromkeys(systems):
                if system in KNOWN_SYSTEMS:
                    self._v2_system(system)

    def read_obs_epoch(self, f: T.TextIO) -> EpochStatus:
        """read the next epoch of an observation file; the header must have been read"""
        if self.in_file_version == RinexVersion.V210:
            return obs2.read_epoch(self, f)
        elif self.in_file_version == RinexVersion.V304:
            return obs3.read_epoch(self, f)

        self.log.error('RINEX header not read')
        return EpochStatus.ERROR

    def read_nav_epoch(self, f: T.TextIO) -> EpochStatus:
        """read the next navigation record, adding it to the stored ones"""
        if self.in_file_version == RinexVersion.V210:
            return nav2.read_epoch(self, f, self.nav_system or 'G')
        elif self.in_file_version == RinexVersion.V304:
            return nav3.read_epoch(self, f)

        self.log.error('RINEX header not read')
        return EpochStatus.ERROR

    def _read_event(self, f: T.TextIO, n: int) -> EpochStatus:
        """the n special records of an event epoch (flags 2 to 5)"""
        flag = self.epoch_flag
        event = EVENT_NAMES.get(flag, 'Event')
        self.clear_header_data()
        for _ in range(n):
            ln = self._readline(f)
            if not ln:
                self.log.error(f'{event}: end of file in special records')
                return EpochStatus.ERROR
            if self._is_epoch_start(ln):
                self._unread(ln)
                self.log.error(f'{event}: error in special records, fewer than {n}')
                return EpochStatus.ERROR
            if self._read_hdline(ln, self.in_file_version) in (Label.NOLABEL, Label.DONTMATCH):
                self.log.error(f'{event}: error in special records: {ln.rstrip()}')
                return EpochStatus.ERROR

        if flag == 3 and not self.has_data(Label.MRKNAME):
            self.log.error(f'{event}: MARKER NAME missing')
            return EpochStatus.ERROR
        return EpochStatus.OK

    def _is_epoch_start(self, line: str) -> bool:
        if self.in_file_version == RinexVersion.V210:
            return obs2.is_epoch_line(line.rstrip('\r\n'))
        return line.startswith('>')
