from __future__ import annotations
import gzip
import zipfile
from pathlib import Path
from contextlib import contextmanager
import io
import logging
import typing as T


@contextmanager
def opener(fn: T.TextIO | Path | str) -> T.Iterator[T.TextIO]:
    """provides file handle for regular ASCII, gzip or zip files transparently"""
    if isinstance(fn, str):
        fn = Path(fn).expanduser()

    if isinstance(fn, io.TextIOBase):
        fn.seek(0)
        yield fn
    elif isinstance(fn, Path):
        finf = fn.stat()
        if finf.st_size > 100e6:
            logging.getLogger('torinex').info(f'opening {finf.st_size/1e6} MByte {fn.name}')

        if fn.suffix == '.gz':
            with gzip.open(fn, 'rt', encoding='ascii', errors='ignore') as f:
                yield f
        elif fn.suffix == '.zip':
            with zipfile.ZipFile(fn, 'r') as z:
                flist = z.namelist()
                for rinexfn in flist:
                    with z.open(rinexfn, 'r') as bf:
                        f = io.StringIO(io.TextIOWrapper(bf, encoding='ascii', errors='ignore').read())
                        yield f
        else:
            with fn.open('r', encoding='ascii', errors='ignore') as f:
                yield f
    else:
        raise OSError(f'Unsure what to do with input of type: {type(fn)}')


def rinexinfo(f: Path | T.TextIO | str) -> dict[str, T.Any]:
    """verify RINEX version, file type and system from the first header line"""

    if isinstance(f, (str, Path)):
        fn = Path(f).expanduser()

        with opener(fn) as f:
            return rinexinfo(f)

    f.seek(0)

    try:
        line = f.readline(80)  # don't choke on binary files

        version = rinex_version(line)
        file_type = line[20]
        if int(version) == 2:
            system = {'N': 'G', 'G': 'R', 'H': 'S'}.get(file_type, line[40])
        else:
            system = line[40]
        if system == ' ':
            system = 'G'

        if file_type == 'O':
            rinex_type = 'obs'
        elif file_type in ('N', 'G', 'H'):
            rinex_type = 'nav'
        else:
            rinex_type = file_type

        info = {'version': version,
                'filetype': file_type,
                'rinextype': rinex_type,
                'systems': system}

    except (TypeError, AttributeError, ValueError, IndexError, UnicodeDecodeError) as e:
        # keep ValueError for consistent user error handling
        raise ValueError(f'not a known/valid RINEX file.  {e}')
    finally:
        f.seek(0)

    return info


def rinex_version(s: str) -> float:
    """

    Parameters
    ----------

    s : str
       first line of RINEX file

    Results
    -------

    version : float
        RINEX file version
    """
    if not isinstance(s, str):
        raise TypeError('need first line of RINEX file as string')
    if len(s) < 2:
        raise ValueError(f'first line of file is corrupted {s}')

    if len(s) >= 80:
        if s[60:80] != 'RINEX VERSION / TYPE':
            raise ValueError('The first line of the RINEX file header is corrupted.')

    try:
        vers = float(s[:9])  # %9.2f
    except ValueError as err:
        raise ValueError(f'Could not determine file version from {s[:9]}   {err}')

    if int(vers) not in (2, 3):
        raise ValueError(f'RINEX version {vers} is not handled')

    return vers
