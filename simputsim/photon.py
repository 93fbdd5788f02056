### Generation of individual photons (time, energy and direction of origin) for the
## sources of a SIMPUT catalog.

from simputsim.exceptions import SimputConfigError, LightCurveRangeError
from simputsim.data_loader import ExtType
from simputsim.klein_roberts import sample_time
from simputsim.lightcurve import bin_at, time_at

__all__ = ['get_simput_photon', 'get_simput_photon_time', 'get_simput_photon_energy_coord',
           'get_simput_photon_rate', 'get_simput_src_band_flux', 'get_simput_src_ext']


def get_simput_photon_rate(cat, src, prevtime, mjdref):
    """
    Average photon rate of a source after weighting with the instrument ARF [photons/s].

    The rate is determined once per source and cached in the catalog. It does not contain
    any contribution of a light curve.

    For a spectrum: FLUX / (energy flux of the spectrum in the reference band) * total rate
    of the spectral distribution. For a photon list: FLUX / (summed photon energies in the
    reference band) * (summed effective area at the photon energies).

    Args:
        cat (simputsim.catalog.SimputCatalog): the catalog
        src (simputsim.catalog.SimputSource): the source
        prevtime (float): time at which the spectrum reference is evaluated [s]
        mjdref (float): MJD of the reference time [d]

    Returns:
        float: photon rate [photons/s]

    Raises:
        SimputConfigError: If the ARF is undefined or no valid spectrum is found.
    """
    rate = cat.cached_rate(src)
    if rate is not None:
        return rate

    specref = cat.spec_ref(src, prevtime, mjdref)
    spectype = cat.ext_type(specref)

    if cat.arf is None:
        raise SimputConfigError("instrument ARF undefined")

    if spectype == ExtType.MIDPSPEC:
        refband_flux = cat.get_midpspec(specref).band_flux(src.e_min, src.e_max)
        if not refband_flux > 0.:
            raise SimputConfigError(f"spectrum '{specref}' has no flux in the reference band of source {src.src_id}")
        rate = src.eflux / refband_flux * cat.get_spec(specref).total

    elif spectype == ExtType.PHLIST:
        phl = cat.get_phlist(specref)
        refband_flux = phl.refband_flux(src.e_min, src.e_max)
        if not refband_flux > 0.:
            raise SimputConfigError(f"photon list '{specref}' has no photons in the reference band of source {src.src_id}")
        rate = src.eflux / refband_flux * phl.refnumber(cat.arf)

    else:
        raise SimputConfigError(f"could not find valid spectrum extension for source {src.src_id}")

    cat.store_rate(src, rate)
    return rate


def get_simput_photon_time(cat, src, prevtime, mjdref):
    """
    Arrival time of the next photon of a source after prevtime.

    Sources without a timing extension emit photons with exponentially distributed
    waiting times. Otherwise the Klein & Roberts algorithm is applied to the light curve.

    Args:
        cat (simputsim.catalog.SimputCatalog): the catalog
        src (simputsim.catalog.SimputSource): the source
        prevtime (float): time of the previous photon [s]
        mjdref (float): MJD of the reference time [d]

    Returns:
        float or None: time of the next photon [s]. None if the rate is 0 or the
        light curve does not cover the requested time.
    """
    timeref = cat.time_ref(src)
    avgrate = get_simput_photon_rate(cat, src, prevtime, mjdref)
    if avgrate == 0.:
        return None

    if timeref == '':
        return prevtime + cat.rndgen.exponential(1. / avgrate)

    try:
        krlc = cat.get_krlc(src, timeref, prevtime, mjdref)
    except LightCurveRangeError:
        return None
    return sample_time(krlc, prevtime, mjdref, avgrate, cat.rndgen,
                       refetch=lambda time: cat.get_krlc(src, timeref, time, mjdref))


def get_simput_photon_energy_coord(cat, src, time, mjdref):
    """
    Energy and direction of origin of a photon emitted at the given time.

    Args:
        cat (simputsim.catalog.SimputCatalog): the catalog
        src (simputsim.catalog.SimputSource): the source
        time (float): arrival time of the photon [s]
        mjdref (float): MJD of the reference time [d]

    Returns:
        tuple: (energy [keV], ra [rad], dec [rad])

    Raises:
        SimputConfigError: If the ARF is undefined or the references are invalid.
    """
    specref = cat.spec_ref(src, time, mjdref)
    imagref = cat.image_ref(src, time, mjdref)
    spectype = cat.ext_type(specref)
    imagtype = cat.ext_type(imagref)

    if cat.arf is None:
        raise SimputConfigError("instrument ARF undefined")

    energy = ra = dec = None

    # Photon lists provide energy and position of the same photon.
    if spectype == ExtType.PHLIST or imagtype == ExtType.PHLIST:
        phl = cat.get_phlist(specref if spectype == ExtType.PHLIST else imagref)
        ph_energy, ph_ra, ph_dec = phl.draw(cat.arf, cat.rndgen)
        if spectype == ExtType.PHLIST:
            energy = ph_energy
        if imagtype == ExtType.PHLIST:
            ra, dec = ph_ra, ph_dec

    if spectype == ExtType.MIDPSPEC:
        energy = cat.get_spec(specref).sample_energy(cat.arf, cat.rndgen)
    elif spectype != ExtType.PHLIST:
        raise SimputConfigError(f"could not find valid spectrum extension for source {src.src_id}")

    if imagtype == ExtType.NONE:
        ra, dec = src.ra, src.dec
    elif imagtype == ExtType.IMAGE:
        ra, dec = cat.get_img(imagref).sample_position(src, cat.rndgen)
    elif imagtype != ExtType.PHLIST:
        raise SimputConfigError(f"'{imagref}' is neither an image nor a photon list")

    return energy, ra, dec


def get_simput_photon(cat, src, prevtime, mjdref):
    """
    Generate the next photon of a source after prevtime.

    Returns:
        tuple or None: (time [s], energy [keV], ra [rad], dec [rad]), or None if no photon
        can be produced (zero rate or light curve exhausted).
    """
    time = get_simput_photon_time(cat, src, prevtime, mjdref)
    if time is None:
        return None
    energy, ra, dec = get_simput_photon_energy_coord(cat, src, time, mjdref)
    return time, energy, ra, dec


def get_simput_src_band_flux(cat, src, time, mjdref):
    """
    Energy flux of a source in its reference band at the given time [erg/s/cm^2].

    For sources with a light curve loaded from a file the catalog flux is multiplied
    with the value of the linear light curve model at that time. Outside the interval
    covered by a non-periodic light curve the flux is 0. Sources without timing extension
    or with a PSD have the catalog flux.
    """
    timeref = cat.time_ref(src)
    if timeref == '' or cat.ext_type(timeref) != ExtType.LC:
        return src.eflux

    krlc = cat.get_krlc(src, timeref, time, mjdref)
    try:
        kk, nperiods = bin_at(krlc, time, mjdref)
    except LightCurveRangeError:
        return 0.
    dt = time - time_at(krlc, kk, nperiods, mjdref)
    return src.eflux * max(krlc.a[kk] * dt + krlc.b[kk], 0.)


def get_simput_src_ext(cat, src, prevtime, mjdref):
    """
    Maximum angular extension of a source [rad].

    Point sources have the extension 0, images the maximum distance of their corners from
    the reference position, photon lists the maximum distance of their photons from the
    coordinate origin.
    """
    imagref = cat.image_ref(src, prevtime, mjdref)
    imagtype = cat.ext_type(imagref)
    if imagtype == ExtType.NONE:
        return 0.
    if imagtype == ExtType.IMAGE:
        return cat.get_img(imagref).extension(src.imgscal)
    if imagtype == ExtType.PHLIST:
        return cat.get_phlist(imagref).extension()
    raise SimputConfigError(f"'{imagref}' is neither an image nor a photon list")
