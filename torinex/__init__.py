from .base import load, rinexnav, rinexobs, convert
from .utils import gettime, rinexheader, reader
from .rio import rinexinfo, rinex_version, opener
from .rinexdata import RinexData
from .labels import RinexVersion, Label
from .epoch import EpochStatus, ObsData, SatNavData
from .header import (VersionType, ProgramRunBy, Comment, Text, ObserverAgency, Receiver, Antenna,
                     Triple, Scalar, Count, PhaseCenter, WavelengthFactor, ObsTypes, ObsTime,
                     CorrectionApplied, ScaleFactor, PhaseShift, GlonassSlot, GlonassBias,
                     LeapSeconds, PrnObsCount, Correction)
