from __future__ import annotations
import typing as T

from .labels import RinexVersion, V3_OBS_TYPES, V2_OBS_TYPES, SYSTEMS, v2_to_v3

KNOWN_SYSTEMS = tuple(s for s in SYSTEMS if s != 'M')


class ObsMeta:
    """an observable type of a system: its V3 code and selection flags"""

    def __init__(self, code: str, declared: bool = False):
        self.code = code
        self.decl = declared  # in the header or in the data received
        self.sel = declared  # declared and passing the observable filter
        self.prt = False  # selected and printable in the output version

    def __repr__(self) -> str:
        return f'ObsMeta({self.code!r}, decl={self.decl}, sel={self.sel}, prt={self.prt})'


class GNSSSystem:
    """
    A GNSS system that can provide data to a RINEX file.

    All observable types having a V2 equivalent are inserted first, not
    declared. The codes given are then declared and selected, new descriptors being added
    at the end for codes without a V2 equivalent.
    """

    def __init__(self, system: str, codes: T.Iterable[str]):
        self.system = system
        self.selected = True
        self.obs_types = [ObsMeta(c) for c in V3_OBS_TYPES]
        self.sel_sats: list[int] = []  # empty: all satellites pass
        for c in codes:
            self.select(c)

    def select(self, code: str) -> int:
        """mark code as declared and selected, adding it if needed. Returns its index"""
        i = self.index(code)
        if i < 0:
            self.obs_types.append(ObsMeta(code, True))
            return len(self.obs_types) - 1

        self.obs_types[i].decl = True
        self.obs_types[i].sel = True
        return i

    def index(self, code: str) -> int:
        for i, o in enumerate(self.obs_types):
            if o.code == code:
                return i
        return -1

    def selected_codes(self) -> list[str]:
        return [o.code for o in self.obs_types if o.sel]

    def printable_codes(self) -> list[str]:
        return [o.code for o in self.obs_types if o.prt]

    def set_printable(self, version: RinexVersion):
        for o in self.obs_types:
            o.prt = o.sel and (version != RinexVersion.V210 or o.code in V3_OBS_TYPES)

    def is_sat_selected(self, sat: int) -> bool:
        return self.selected and (not self.sel_sats or sat in self.sel_sats)

    def __repr__(self) -> str:
        return f'GNSSSystem({self.system!r}, {self.selected_codes()})'


def parse_sat(token: str) -> tuple[str, int]:
    """
    satellite identifier as in RINEX files: G05, G 5, R12.
    A blank system is GPS (RINEX 2). PRN 0 means the whole system.
    """
    if not token or not token.strip():
        raise ValueError('empty satellite identifier')

    system = token[0] if token[0] != ' ' else 'G'
    if system.isdigit():
        system, num = 'G', token
    else:
        num = token[1:]

    if system not in KNOWN_SYSTEMS and system != 'T':
        raise ValueError(f'Satellite system code unknown={system}')

    num = num.strip()
    prn = int(num) if num else 0
    if not 0 <= prn < 100:
        raise ValueError(f'Wrong PRN {token}')

    return system, prn


def parse_obs_token(token: str) -> tuple[str | None, str]:
    """
    observable selection token:
        GC1C - system G, code C1C
        C1C  - code C1C, any system
        C1   - V2 code, any system
    """
    token = token.strip()
    if len(token) == 4:
        if token[0] not in KNOWN_SYSTEMS:
            raise ValueError(f'Satellite system code unknown={token[0]}')
        return token[0], token[1:]
    elif len(token) == 3:
        return None, token
    elif len(token) == 2 and token in V2_OBS_TYPES:
        return None, T.cast(str, v2_to_v3(token))

    raise ValueError(f'Wrong observable type {token}')
