import os
import math
from dataclasses import dataclass

from simputsim.inputs import Input
from simputsim.cache import SimputCache
from simputsim.rndgen import RandomSource
from simputsim.exceptions import SimputConfigError, LightCurveRangeError
from simputsim.spectrum import convolve_with_arf
from simputsim.lightcurve import KRLightCurve, bin_at, covers, time_at
from simputsim.psd import lightcurve_from_psd
from simputsim import data_loader
from simputsim.data_loader import ExtType, is_null_ref

__all__ = ['SimputSource', 'SimputCatalog']


@dataclass(frozen=True)
class SimputSource():
    '''
    A source of a SIMPUT catalog.

    Arguments:
        src_id (int): unique source identifier, must be positive
        ra (float): right ascension [rad]
        dec (float): declination [rad]
        e_min (float): lower boundary of the reference energy band [keV]
        e_max (float): upper boundary of the reference energy band [keV]
        eflux (float): energy flux in the reference band [erg/s/cm^2]
        spectrum (str): reference to the spectrum or photon list
        image (str, optional): reference to the image or photon list. Default is '' (point source).
        timing (str, optional): reference to the light curve or PSD. Default is '' (constant brightness).
        src_name (str, optional): name of the source
        imgrota (float, optional): image rotation angle [rad]. Default is 0.
        imgscal (float, optional): image scaling factor, must not be 0. Default is 1.

    Raises:
        ValueError: If src_id is not positive, imgscal is 0 or the energy band is empty.
    '''
    src_id: int
    ra: float
    dec: float
    e_min: float
    e_max: float
    eflux: float
    spectrum: str
    image: str = ''
    timing: str = ''
    src_name: str = ''
    imgrota: float = 0.
    imgscal: float = 1.

    def __post_init__(self):
        if self.src_id <= 0:
            raise ValueError(f"SRC_ID must be positive, got {self.src_id}")
        if self.imgscal == 0.:
            raise ValueError(f"IMGSCAL of source {self.src_id} must not be 0")
        if not self.e_max > self.e_min:
            raise ValueError(f"reference energy band of source {self.src_id} is empty ({self.e_min} - {self.e_max} keV)")


class SimputCatalog():
    '''
    A SIMPUT source catalog together with the engine state used to generate photons from it.

    The catalog owns the caches of all derived data products, the random number source and
    the instrument ARF, so that several catalogs can be processed independently.

    Arguments:
        filename (str, optional): path to a SIMPUT catalog file. References in the catalog
            are resolved relative to this file.
        sources (list of SimputSource, optional): sources of an in-memory catalog. If given
            together with filename, the file is not read and only serves to resolve the
            references. Without filename, references are resolved relative to the current
            working directory.
        arf (simputsim.arf.ARF, optional): instrument response. Default is None.
        rndgen (callable, optional): uniform random number generator in [0,1). Default is None.
        config (simputsim.inputs.Input, optional): engine configuration. Defaults to Input().
        extname (str, optional): name of the source table extension. Default is 'SRC_CAT'.

    Raises:
        ValueError: If neither a file nor a list of sources is given.
    '''
    def __init__(self, filename=None, sources=None, arf=None, rndgen=None, config=None, extname='SRC_CAT'):
        if filename is None and sources is None:
            raise ValueError("either a catalog file or a list of sources must be given")

        self.config = config if config is not None else Input()
        self.cache = SimputCache(self.config)
        self.rndgen = RandomSource(rndgen, seed=self.config.seed)
        self.arf = arf

        if filename is not None:
            self.filepath = os.path.dirname(os.path.abspath(filename))
            self.filename = os.path.basename(filename)
        else:
            self.filepath = os.getcwd()
            self.filename = ''

        if sources is not None:
            self._sources = list(sources)
            self._columns = None
            self.nentries = len(self._sources)
        else:
            self._sources = None
            self._columns = data_loader.load_catalog(filename, extname=extname)
            self.nentries = len(self._columns['SRC_ID'])

        # Extension types and photon rates determined so far
        self._ext_types = {}
        self._phrates = {}

        if self.config.verbose:
            print(f"SIMPUT catalog '{filename if filename is not None else '<memory>'}' with {self.nentries} sources")

    def __len__(self):
        return self.nentries

    def set_arf(self, arf):
        """
        Set the instrument ARF. Spectral distributions and photon rates depending on a
        previous ARF are discarded.
        """
        self.arf = arf
        self.cache.specs.clear()
        self._phrates = {}

    def set_rndgen(self, rndgen):
        """
        Set the random number generator (callable returning floats in [0,1)).
        """
        self.rndgen.set(rndgen)

    def get_source(self, row):
        """
        Return the source in the given row (0-based) of the catalog.

        Raises:
            IndexError: If the row does not exist.
        """
        if not 0 <= row < self.nentries:
            raise IndexError(f"invalid row number {row} (catalog has {self.nentries} sources)")
        return self.cache.sources.get(row, lambda: self._load_source(row))

    def sources(self):
        for row in range(self.nentries):
            yield self.get_source(row)

    def _load_source(self, row):
        if self._sources is not None:
            return self._sources[row]
        col = self._columns
        try:
            return SimputSource(src_id=int(col['SRC_ID'][row]), ra=float(col['RA'][row]), dec=float(col['DEC'][row]),
                                e_min=float(col['E_MIN'][row]), e_max=float(col['E_MAX'][row]),
                                eflux=float(col['FLUX'][row]), spectrum=col['SPECTRUM'][row],
                                image=col['IMAGE'][row], timing=col['TIMING'][row],
                                src_name=col['SRC_NAME'][row], imgrota=float(col['IMGROTA'][row]),
                                imgscal=float(col['IMGSCAL'][row]))
        except ValueError as err:
            raise SimputConfigError(f"invalid source in row {row} of '{self.filename}': {err}") from err

    ### Reference resolution

    def resolve_ref(self, ref):
        """
        Resolve a reference given in the catalog.

        Empty, blank and 'NULL' references yield ''. References starting with '[' point to
        an extension of the catalog file itself, relative paths are relative to the directory
        of the catalog.

        Args:
            ref (str): reference as given in the catalog

        Returns:
            str: resolved reference
        """
        if is_null_ref(ref):
            return ''
        ref = ref.strip()
        if ref.startswith('['):
            if not self.filename:
                raise SimputConfigError(f"reference '{ref}' points into the catalog file, but the catalog has no file")
            return os.path.join(self.filepath, self.filename) + ref
        if os.path.isabs(ref):
            return ref
        return os.path.join(self.filepath, ref)

    def ext_type(self, ref):
        """
        Return the type of the extension a resolved reference points to.
        """
        if is_null_ref(ref):
            return ExtType.NONE
        if ref not in self._ext_types:
            self._ext_types[ref] = data_loader.get_ext_type(ref)
        return self._ext_types[ref]

    def time_ref(self, src):
        return self.resolve_ref(src.timing)

    def _lc_entry_ref(self, src, column, time, mjdref):
        # Reference from the SPECTRUM or IMAGE column of the light curve, or None.
        timeref = self.time_ref(src)
        if self.ext_type(timeref) != ExtType.LC:
            return None
        lc = self.get_lc(src, timeref, time, mjdref)
        entries = getattr(lc, column)
        if entries is None:
            return None

        try:
            kk, _ = bin_at(lc, time, mjdref)
        except LightCurveRangeError:
            # Outside the covered interval the first or the last bin is used.
            kk = 0 if time < time_at(lc, 0, 0, mjdref) else lc.nentries - 1
        entry = entries[kk]
        if is_null_ref(entry):
            raise SimputConfigError(f"light curves must not contain blank entries in the {column.upper()} column ('{timeref}')")

        # Relative to the location of the light curve.
        entry = entry.strip()
        if entry.startswith('['):
            return timeref.split('[', 1)[0] + entry
        if os.path.isabs(entry):
            return entry
        return os.path.join(os.path.dirname(timeref.split('[', 1)[0]), entry)

    def spec_ref(self, src, time, mjdref):
        """
        Resolved reference to the spectrum of a source valid at the given time.
        """
        ref = self._lc_entry_ref(src, 'spectrum', time, mjdref)
        if ref is not None:
            return ref
        return self.resolve_ref(src.spectrum)

    def image_ref(self, src, time, mjdref):
        """
        Resolved reference to the image of a source valid at the given time.
        """
        ref = self._lc_entry_ref(src, 'image', time, mjdref)
        if ref is not None:
            return ref
        return self.resolve_ref(src.image)

    ### Cached data products

    def get_midpspec(self, ref):
        return self.cache.midpspecs.get(ref, lambda: data_loader.load_midpspec(ref))

    def get_spec(self, ref):
        """
        Spectral distribution of the spectrum ref convolved with the ARF.
        """
        if self.arf is None:
            raise SimputConfigError("instrument ARF undefined")
        return self.cache.specs.get(ref, lambda: convolve_with_arf(self.get_midpspec(ref), self.arf))

    def get_psd(self, ref):
        return self.cache.psds.get(ref, lambda: data_loader.load_psd(ref))

    def get_img(self, ref):
        return self.cache.imgs.get(ref, lambda: data_loader.load_image(ref))

    def get_phlist(self, ref):
        return self.cache.phlists.get(ref, lambda: data_loader.load_phlist(ref))

    def _timing_key(self, src, timeref):
        # Light curves generated from a PSD are private to the source.
        timetype = self.ext_type(timeref)
        if timetype == ExtType.PSD:
            return (timeref, src.src_id), True
        if timetype == ExtType.LC:
            return (timeref, 0), False
        if timetype == ExtType.PHLIST:
            raise SimputConfigError("photon lists are not supported as timing extensions")
        raise SimputConfigError(f"'{timeref}' is neither a light curve nor a PSD")

    def get_lc(self, src, timeref, time, mjdref):
        """
        Light curve referred to by timeref.

        Light curves loaded from a file are shared among all sources. For a PSD a light curve
        realization starting at time is generated for the source. It is replaced by a new
        realization once a time beyond its end is requested.
        """
        key, private = self._timing_key(src, timeref)

        def load():
            if not private:
                return data_loader.load_lightcurve(timeref)
            lc = lightcurve_from_psd(self.get_psd(timeref), self.rndgen, time, mjdref, src.src_id,
                                     nbins=self.config.psd_length)
            if self.config.verbose:
                print(f"Generated light curve for source {src.src_id} from PSD '{timeref}' starting at {time} s")
            return lc

        is_valid = (lambda lc: covers(lc, time, mjdref)) if private else None
        return self.cache.lcs.get(key, load, is_valid=is_valid)

    def get_krlc(self, src, timeref, time, mjdref):
        """
        Klein & Roberts representation of the light curve referred to by timeref.
        """
        key, private = self._timing_key(src, timeref)
        is_valid = (lambda krlc: covers(krlc, time, mjdref)) if private else None
        return self.cache.krlcs.get(
            key, lambda: KRLightCurve.from_lightcurve(self.get_lc(src, timeref, time, mjdref)), is_valid=is_valid)

    def cached_rate(self, src):
        return self._phrates.get(src.src_id)

    def store_rate(self, src, rate):
        if math.isnan(rate):
            raise SimputConfigError(f"photon rate of source {src.src_id} is undefined")
        self._phrates[src.src_id] = rate
