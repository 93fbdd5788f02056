### Photon arrival times from piece-wise linear light curves.
## Klein, R. I. & Roberts, W. W., 1984, ApJ 286, 276: exact inverse transform sampling of
## an inhomogeneous Poisson process with the rate (a[k]*t + b[k])*avgrate in bin k, where
## t is measured from the start of the bin.

import math

from simputsim.exceptions import LightCurveRangeError, SimputError
from simputsim.lightcurve import bin_at, time_at


def sample_time(krlc, prevtime, mjdref, avgrate, rndgen, refetch=None, u=None):
    """
    Draw the arrival time of the next photon after prevtime.

    Args:
        krlc (simputsim.lightcurve.KRLightCurve): the light curve containing prevtime
        prevtime (float): time of the previous photon [s]
        mjdref (float): MJD of the reference time [d]
        avgrate (float): average photon rate [photons/s]
        rndgen (simputsim.rndgen.RandomSource): random numbers
        refetch (callable, optional): called with a time when the end of a light curve
            synthesized for a particular source (src_id > 0) is reached. Must return a
            KRLightCurve covering that time. Default is None.
        u (float, optional): use this value instead of drawing the uniform random number

    Returns:
        float or None: time of the next photon [s], or None if the interval covered by
        the light curve is exhausted or the rate is 0.

    Raises:
        SimputError: If refetch does not provide a light curve extending beyond the old one.
    """
    if avgrate == 0.:
        return None
    if avgrate < 0.:
        raise SimputError(f"photon rate must not be negative, got {avgrate}")

    if u is None:
        u = rndgen.uniform()

    try:
        kk, nperiods = bin_at(krlc, prevtime, mjdref)
    except LightCurveRangeError:
        return None

    # Number of consecutive bins without photon probability
    nzero = 0

    while kk < krlc.nentries - 1 or krlc.src_id > 0:

        # End of a light curve generated for this source, get a new one.
        if kk >= krlc.nentries - 1 and krlc.src_id > 0:
            if refetch is None:
                return None
            krlc = refetch(prevtime)
            try:
                kk, nperiods = bin_at(krlc, prevtime, mjdref)
            except LightCurveRangeError:
                kk = krlc.nentries - 1
            if kk >= krlc.nentries - 1 or time_at(krlc, krlc.nentries - 1, 0, mjdref) <= prevtime:
                raise SimputError(f"the light curve '{krlc.fileref}' could not be extended beyond {prevtime} s")

        t_start = time_at(krlc, kk, nperiods, mjdref)
        t = prevtime - t_start
        stepwidth = time_at(krlc, kk + 1, nperiods, mjdref) - t_start
        a = krlc.a[kk]
        b = krlc.b[kk]

        uk = 1. - math.exp((-a / 2. * (stepwidth**2 - t**2) - b * (stepwidth - t)) * avgrate)

        if u <= uk and uk > 0.:
            if abs(a * stepwidth) > abs(b * 1.e-6):
                # Analytically non-negative, rounding can make it slightly negative.
                radicand = b**2 + (a * t)**2 + 2. * a * b * t - 2. * a * math.log(1. - u) / avgrate
                return t_start + (-b + math.sqrt(max(radicand, 0.))) / a
            # Rate is constant within the bin.
            return prevtime - math.log(1. - u) / (b * avgrate)

        u = (u - uk) / (1. - uk)
        nzero = nzero + 1 if uk <= 0. else 0
        kk += 1
        if kk >= krlc.nentries - 1 and krlc.is_periodic:
            # A whole period without flux: the source never emits.
            if nzero >= krlc.nentries:
                return None
            kk = 0
            nperiods += 1
        prevtime = time_at(krlc, kk, nperiods, mjdref)

    return None
