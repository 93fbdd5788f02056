import os
import re
from enum import Enum
import numpy as np
from astropy.io import fits
import astropy.units as u
from astropy.wcs import WCS

from simputsim.exceptions import SimputConfigError
from simputsim.spectrum import MIdpSpectrum
from simputsim.lightcurve import LightCurve, NonPeriodicTiming, PeriodicTiming
from simputsim.psd import PowerSpectralDensity
from simputsim.image import SimputImage
from simputsim.phlist import SimputPhList

# Internal units
PHOTON_FLUX_DENSITY = u.photon / u.s / u.cm**2 / u.keV
ENERGY_FLUX = u.erg / u.s / u.cm**2

_FILEREF = re.compile(r"^(?P<path>[^\[]*)(\[(?P<ext>[^\]]*)\])?(\[(?P<filter>[^\]]*)\])?$")
_NAME_FILTER = re.compile(r"^\s*NAME\s*==\s*['\"](?P<name>.*)['\"]\s*$", re.IGNORECASE)
_ROW_FILTER = re.compile(r"^\s*#ROW\s*==\s*(?P<row>\d+)\s*$", re.IGNORECASE)


class ExtType(Enum):
    """Type of the extension a reference points to."""
    NONE = 0
    MIDPSPEC = 1
    LC = 2
    PSD = 3
    IMAGE = 4
    PHLIST = 5


# Values of HDUCLAS2 identifying SIMPUT extensions
_HDUCLAS2 = {'SPECTRUM': ExtType.MIDPSPEC,
             'LIGHTCURVE': ExtType.LC,
             'POWSPEC': ExtType.PSD,
             'IMAGE': ExtType.IMAGE,
             'PHOTONS': ExtType.PHLIST}


def is_null_ref(ref):
    """
    Return True if a reference does not point to any extension ('', 'NULL' or blank).
    """
    return ref is None or ref.strip() == '' or ref.strip() == 'NULL'


def parse_fileref(ref):
    '''
    Split an extended file name into its components.

    Supported forms are 'path', 'path[EXTNAME]', 'path[EXTNAME,EXTVER]' and 'path[N]'
    (HDU number, 0 is the primary HDU), each optionally followed by a row selector
    "[NAME=='name']" or '[#ROW==n]' (1-based) for tables with one entry per row.

    Args:
        ref (str): the reference

    Returns:
        tuple: (path, ext, rowfilter). ext is None, an int, a str, or a (str, int) tuple.
        rowfilter is None, ('NAME', str) or ('#ROW', int).

    Raises:
        SimputConfigError: If the reference cannot be parsed.
    '''
    match = _FILEREF.match(ref.strip())
    if match is None:
        raise SimputConfigError(f"invalid extended file name '{ref}'")

    ext = match.group('ext')
    if ext is not None:
        ext = ext.strip()
        if ext.isdigit():
            ext = int(ext)
        elif ',' in ext:
            name, ver = ext.split(',', 1)
            try:
                ext = (name.strip(), int(ver))
            except ValueError as err:
                raise SimputConfigError(f"invalid extension version in '{ref}'") from err
        elif ext == '':
            ext = None

    rowfilter = match.group('filter')
    if rowfilter is not None:
        name_match = _NAME_FILTER.match(rowfilter)
        row_match = _ROW_FILTER.match(rowfilter)
        if name_match is not None:
            rowfilter = ('NAME', name_match.group('name'))
        elif row_match is not None:
            rowfilter = ('#ROW', int(row_match.group('row')))
        else:
            raise SimputConfigError(f"unsupported row selection '{rowfilter}' in '{ref}'")

    return match.group('path'), ext, rowfilter


def _select_hdu(hdul, ext, ref):
    if ext is None:
        for hdu in hdul:
            if hdu.data is not None:
                return hdu
        raise SimputConfigError(f"'{ref}' does not contain any data")
    try:
        return hdul[ext]
    except (KeyError, IndexError) as err:
        raise SimputConfigError(f"extension {ext} not found in '{ref}'") from err


def _read_hdu(ref):
    """
    Read the header and a copy of the data of the extension a reference points to.
    """
    path, ext, rowfilter = parse_fileref(ref)
    if not os.path.exists(path):
        raise FileNotFoundError(f"file '{path}' referred to by '{ref}' does not exist")
    with fits.open(path, memmap=False) as hdul:
        hdu = _select_hdu(hdul, ext, ref)
        header = hdu.header.copy()
        is_table = isinstance(hdu, (fits.BinTableHDU, fits.TableHDU))
        data = None if hdu.data is None else hdu.data.copy()
        units = {col.name.upper(): col.unit for col in hdu.columns} if is_table else {}
    return header, data, units, rowfilter, is_table


def _unit_factor(unit, target, what, ref):
    """
    Conversion factor from the unit given in a file to the internal unit.

    A missing unit is interpreted as the internal unit.
    """
    if unit is None or str(unit).strip() == '':
        return 1.
    try:
        return u.Unit(str(unit).strip()).to(target)
    except (ValueError, u.UnitsError) as err:
        raise SimputConfigError(f"invalid unit '{unit}' of {what} in '{ref}'") from err


def _column(data, units, name, target, ref):
    if not _has_column(data, name):
        raise SimputConfigError(f"column '{name}' not found in '{ref}'")
    return np.array(data[name], dtype=float) * _unit_factor(units.get(name), target, name, ref)


def _has_column(data, name):
    return name.upper() in [colname.upper() for colname in data.columns.names]


def get_ext_type(ref):
    """
    Determine the type of the extension a reference points to.

    The HDUCLAS2 keyword is evaluated first. Extensions without it are classified by their
    HDU type and their columns.

    Args:
        ref (str): resolved reference

    Returns:
        ExtType

    Raises:
        SimputConfigError: If the extension cannot be classified.
    """
    if is_null_ref(ref):
        return ExtType.NONE

    header, data, _, _, is_table = _read_hdu(ref)

    hduclas2 = str(header.get('HDUCLAS2', '')).strip().upper()
    if hduclas2 in _HDUCLAS2:
        return _HDUCLAS2[hduclas2]

    if not is_table:
        return ExtType.IMAGE
    if _has_column(data, 'FREQUENCY') and _has_column(data, 'POWER'):
        return ExtType.PSD
    if (_has_column(data, 'TIME') or _has_column(data, 'PHASE')) and _has_column(data, 'FLUX'):
        return ExtType.LC
    if _has_column(data, 'ENERGY') and _has_column(data, 'FLUXDENSITY'):
        return ExtType.MIDPSPEC
    if _has_column(data, 'ENERGY') and _has_column(data, 'RA') and _has_column(data, 'DEC'):
        return ExtType.PHLIST
    raise SimputConfigError(f"extension type of '{ref}' could not be determined")


def load_catalog(filename, extname='SRC_CAT'):
    """
    Load the source table of a SIMPUT catalog.

    Angles are converted to rad, energies to keV and fluxes to erg/s/cm^2. The
    legacy column LIGHTCUR is accepted as TIMING.

    Args:
        filename (str): path to the catalog file
        extname (str, optional): name of the source table extension. Default is 'SRC_CAT'.

    Returns:
        dict: column name -> numpy array

    Raises:
        FileNotFoundError: If the file does not exist.
        SimputConfigError: If required columns are missing or have invalid units.
    """
    ref = f"{filename}[{extname}]"
    _, data, units, _, is_table = _read_hdu(ref)
    if not is_table:
        raise SimputConfigError(f"'{ref}' is not a table")

    nrows = len(data)
    columns = {}
    if not _has_column(data, 'SRC_ID'):
        raise SimputConfigError(f"column 'SRC_ID' not found in '{ref}'")
    columns['SRC_ID'] = np.array(data['SRC_ID'], dtype=int)
    columns['SRC_NAME'] = (np.array([str(name).strip() for name in data['SRC_NAME']], dtype=object)
                           if _has_column(data, 'SRC_NAME') else np.full(nrows, '', dtype=object))
    columns['RA'] = _column(data, units, 'RA', u.rad, ref)
    columns['DEC'] = _column(data, units, 'DEC', u.rad, ref)
    columns['IMGROTA'] = (_column(data, units, 'IMGROTA', u.rad, ref)
                          if _has_column(data, 'IMGROTA') else np.zeros(nrows))
    columns['IMGSCAL'] = (np.array(data['IMGSCAL'], dtype=float)
                          if _has_column(data, 'IMGSCAL') else np.ones(nrows))
    columns['E_MIN'] = _column(data, units, 'E_MIN', u.keV, ref)
    columns['E_MAX'] = _column(data, units, 'E_MAX', u.keV, ref)
    columns['FLUX'] = _column(data, units, 'FLUX', ENERGY_FLUX, ref)

    for name, aliases in [('SPECTRUM', ['SPECTRUM']), ('IMAGE', ['IMAGE']), ('TIMING', ['TIMING', 'LIGHTCUR'])]:
        columns[name] = np.full(nrows, '', dtype=object)
        for alias in aliases:
            if _has_column(data, alias):
                columns[name] = np.array([str(ref_).strip() for ref_ in data[alias]], dtype=object)
                break

    return columns


def _spectrum_row(data, rowfilter, ref):
    if rowfilter is None:
        return 0
    kind, value = rowfilter
    if kind == '#ROW':
        if not 1 <= value <= len(data):
            raise SimputConfigError(f"row {value} does not exist in '{ref}'")
        return value - 1
    if not _has_column(data, 'NAME'):
        raise SimputConfigError(f"spectrum '{ref}' does not have a NAME column")
    names = [str(name).strip() for name in data['NAME']]
    if value not in names:
        raise SimputConfigError(f"spectrum '{value}' not found in '{ref}'")
    return names.index(value)


def load_midpspec(ref):
    """
    Load a mission-independent spectrum.

    Spectra are stored either one per row in vector columns ENERGY and FLUXDENSITY (selected
    with a row filter, default the first row), or as a single spectrum in scalar columns.

    Args:
        ref (str): resolved reference

    Returns:
        simputsim.spectrum.MIdpSpectrum
    """
    _, data, units, rowfilter, is_table = _read_hdu(ref)
    if not is_table:
        raise SimputConfigError(f"spectrum '{ref}' is not a table")

    for name in ('ENERGY', 'FLUXDENSITY'):
        if not _has_column(data, name):
            raise SimputConfigError(f"column '{name}' not found in '{ref}'")
    fenergy = _unit_factor(units.get('ENERGY'), u.keV, 'ENERGY', ref)
    fflux = _unit_factor(units.get('FLUXDENSITY'), PHOTON_FLUX_DENSITY, 'FLUXDENSITY', ref)
    energy = np.array(data['ENERGY'], dtype=float)
    pflux = np.array(data['FLUXDENSITY'], dtype=float)

    name = ''
    if energy.ndim == 2:
        row = _spectrum_row(data, rowfilter, ref)
        energy = energy[row]
        pflux = pflux[row]
        if _has_column(data, 'NAME'):
            name = str(data['NAME'][row]).strip()

    try:
        return MIdpSpectrum(energy * fenergy, pflux * fflux, name=name, fileref=ref)
    except ValueError as err:
        raise SimputConfigError(f"invalid spectrum '{ref}': {err}") from err


def _mjdref(header):
    if 'MJDREF' in header:
        return float(header['MJDREF'])
    return float(header.get('MJDREFI', 0.)) + float(header.get('MJDREFF', 0.))


def _string_column(data, name):
    if not _has_column(data, name):
        return None
    return [str(value).strip() for value in data[name]]


def load_lightcurve(ref):
    """
    Load a light curve.

    Non-periodic light curves have a TIME column, periodic ones a PHASE column together with
    the header keywords PHASE0 and PERIOD. The optional columns SPECTRUM and IMAGE contain
    references for each bin.

    Args:
        ref (str): resolved reference

    Returns:
        simputsim.lightcurve.LightCurve
    """
    header, data, units, _, is_table = _read_hdu(ref)
    if not is_table:
        raise SimputConfigError(f"light curve '{ref}' is not a table")

    if _has_column(data, 'TIME'):
        timing = NonPeriodicTiming(_column(data, units, 'TIME', u.s, ref))
    elif _has_column(data, 'PHASE'):
        if 'PERIOD' not in header:
            raise SimputConfigError(f"periodic light curve '{ref}' lacks the PERIOD keyword")
        timing = PeriodicTiming(np.array(data['PHASE'], dtype=float),
                                float(header.get('PHASE0', 0.)),
                                float(header['PERIOD']),
                                float(header.get('DPERIOD', 0.)))
    else:
        raise SimputConfigError(f"light curve '{ref}' has neither a TIME nor a PHASE column")
    if not _has_column(data, 'FLUX'):
        raise SimputConfigError(f"column 'FLUX' not found in '{ref}'")

    try:
        return LightCurve(timing, np.array(data['FLUX'], dtype=float),
                          mjdref=_mjdref(header),
                          timezero=float(header.get('TIMEZERO', 0.)),
                          fluxscal=float(header.get('FLUXSCAL', 1.)),
                          spectrum=_string_column(data, 'SPECTRUM'),
                          image=_string_column(data, 'IMAGE'),
                          fileref=ref)
    except ValueError as err:
        raise SimputConfigError(f"invalid light curve '{ref}': {err}") from err


def load_psd(ref):
    """
    Load a power spectral density (FREQUENCY [Hz], POWER [1/Hz]).
    """
    _, data, units, _, is_table = _read_hdu(ref)
    if not is_table:
        raise SimputConfigError(f"PSD '{ref}' is not a table")
    try:
        return PowerSpectralDensity(_column(data, units, 'FREQUENCY', u.Hz, ref),
                                    _column(data, units, 'POWER', 1. / u.Hz, ref),
                                    fileref=ref)
    except ValueError as err:
        raise SimputConfigError(f"invalid PSD '{ref}': {err}") from err


def load_image(ref):
    """
    Load a source image together with its WCS and FLUXSCAL.
    """
    header, data, _, _, is_table = _read_hdu(ref)
    if is_table or data is None:
        raise SimputConfigError(f"'{ref}' does not contain an image")
    try:
        return SimputImage(data, WCS(header, naxis=2), fluxscal=float(header.get('FLUXSCAL', 1.)), fileref=ref)
    except ValueError as err:
        raise SimputConfigError(f"invalid image '{ref}': {err}") from err


def load_phlist(ref):
    """
    Load a photon list (ENERGY [keV], RA and DEC [rad]).
    """
    _, data, units, _, is_table = _read_hdu(ref)
    if not is_table:
        raise SimputConfigError(f"photon list '{ref}' is not a table")
    try:
        return SimputPhList(_column(data, units, 'ENERGY', u.keV, ref),
                            _column(data, units, 'RA', u.rad, ref),
                            _column(data, units, 'DEC', u.rad, ref),
                            fileref=ref)
    except ValueError as err:
        raise SimputConfigError(f"invalid photon list '{ref}': {err}") from err
