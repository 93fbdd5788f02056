import math
from dataclasses import dataclass
import numpy as np

from simputsim.exceptions import LightCurveRangeError

# Seconds per day.
SECONDS_PER_DAY = 24. * 3600.


@dataclass(frozen=True)
class NonPeriodicTiming():
    """Light curve sampled at absolute times [s] relative to TIMEZERO."""
    time: np.ndarray


@dataclass(frozen=True)
class PeriodicTiming():
    """Light curve sampled at phases of a periodic oscillation."""
    phase: np.ndarray
    phase0: float
    period: float
    dperiod: float = 0.


class LightCurve():
    '''
    A SIMPUT light curve.

    Arguments:
        timing (NonPeriodicTiming or PeriodicTiming): time or phase grid of the data points
        flux (array): relative flux at the data points (unitless)
        mjdref (float, optional): MJD of the reference time [d]. Default is 0.
        timezero (float, optional): zero time [s]. Default is 0.
        fluxscal (float, optional): flux scaling factor, must not be 0. Default is 1.
        spectrum (list of str, optional): spectrum reference for each data point
        image (list of str, optional): image reference for each data point
        src_id (int, optional): SRC_ID of the source the light curve has been synthesized for.
            0 (default) for light curves loaded from a file, which can be shared among sources.
        fileref (str, optional): resolved reference to the storage location

    Raises:
        ValueError: If the light curve has less than 2 data points, the grid is not ascending,
            the array lengths do not agree, fluxscal is 0 or the period is not positive.
    '''
    def __init__(self, timing, flux, mjdref=0., timezero=0., fluxscal=1.,
                 spectrum=None, image=None, src_id=0, fileref=''):
        self.timing = _validated_timing(timing)
        self.flux = np.asarray(flux, dtype=float)
        grid = _grid(self.timing)
        if self.flux.ndim != 1 or self.flux.size != grid.size:
            raise ValueError("the flux column must have the same length as the time/phase column")
        if self.flux.size < 2:
            raise ValueError("a light curve needs at least 2 data points")
        if fluxscal == 0.:
            raise ValueError("FLUXSCAL must not be 0")
        for name, column in (('SPECTRUM', spectrum), ('IMAGE', image)):
            if column is not None and len(column) != self.flux.size:
                raise ValueError(f"the {name} column must have the same length as the flux column")

        self.mjdref = float(mjdref)
        self.timezero = float(timezero)
        self.fluxscal = float(fluxscal)
        self.spectrum = None if spectrum is None else list(spectrum)
        self.image = None if image is None else list(image)
        self.src_id = int(src_id)
        self.fileref = fileref

    @property
    def nentries(self):
        return self.flux.size

    @property
    def is_periodic(self):
        return isinstance(self.timing, PeriodicTiming)

    def linear_model(self):
        """
        Determine the piece-wise linear representation of the light curve.

        a[k] is the gradient between the data points k and k+1 [1/s], b[k] the value at
        the data point k. Both include the FLUXSCAL. The last gradient is 0.

        Returns:
            tuple: (a, b) arrays of length nentries
        """
        match self.timing:
            case NonPeriodicTiming():
                dt = np.diff(self.timing.time)
            case PeriodicTiming():
                dt = np.diff(self.timing.phase) * self.timing.period

        a = np.zeros(self.nentries)
        b = self.flux / self.fluxscal
        with np.errstate(divide='ignore', invalid='ignore'):
            a[:-1] = np.where(dt > 0., np.diff(self.flux) / dt / self.fluxscal, 0.)
        return a, b


class KRLightCurve():
    '''
    Light curve prepared for the Klein & Roberts algorithm.

    Arguments:
        timing (NonPeriodicTiming or PeriodicTiming): time or phase grid
        a (array): gradients of the piece-wise linear model [1/s]
        b (array): values at the start of each bin
        mjdref (float, optional): MJD of the reference time [d]
        timezero (float, optional): zero time [s]
        src_id (int, optional): owner source for PSD realizations, 0 otherwise
        fileref (str, optional): reference of the timing extension
    '''
    def __init__(self, timing, a, b, mjdref=0., timezero=0., src_id=0, fileref=''):
        self.timing = _validated_timing(timing)
        self.a = np.asarray(a, dtype=float)
        self.b = np.asarray(b, dtype=float)
        if self.a.shape != self.b.shape or self.a.size != _grid(self.timing).size:
            raise ValueError("a and b must have one entry per light curve bin")
        self.mjdref = float(mjdref)
        self.timezero = float(timezero)
        self.src_id = int(src_id)
        self.fileref = fileref

    @property
    def nentries(self):
        return self.a.size

    @property
    def is_periodic(self):
        return isinstance(self.timing, PeriodicTiming)

    @classmethod
    def from_lightcurve(cls, lc, src_id=None):
        """
        Create the K&R representation of a light curve.

        Args:
            lc (LightCurve): the light curve
            src_id (int, optional): owner source. Defaults to lc.src_id.

        Returns:
            KRLightCurve
        """
        a, b = lc.linear_model()
        return cls(lc.timing, a, b, mjdref=lc.mjdref, timezero=lc.timezero,
                   src_id=lc.src_id if src_id is None else src_id, fileref=lc.fileref)


def _validated_timing(timing):
    match timing:
        case NonPeriodicTiming():
            time = np.asarray(timing.time, dtype=float)
            if time.ndim != 1 or np.any(np.diff(time) < 0.):
                raise ValueError("the time values of the light curve must be ascending")
            return NonPeriodicTiming(time)
        case PeriodicTiming():
            phase = np.asarray(timing.phase, dtype=float)
            if phase.ndim != 1 or np.any(np.diff(phase) < 0.):
                raise ValueError("the phase values of the light curve must be ascending")
            if not timing.period > 0.:
                raise ValueError(f"the period of a periodic light curve must be positive, got {timing.period}")
            return PeriodicTiming(phase, float(timing.phase0), float(timing.period), float(timing.dperiod))
        case _:
            raise TypeError(f"unknown light curve timing {type(timing).__name__}")


def _grid(timing):
    match timing:
        case NonPeriodicTiming():
            return timing.time
        case PeriodicTiming():
            return timing.phase


def _offset(lc, mjdref):
    return lc.timezero + (lc.mjdref - mjdref) * SECONDS_PER_DAY


def time_at(lc, kk, nperiods, mjdref):
    """
    Time corresponding to a light curve bin [s].

    For periodic light curves the given number of periods is added, for non-periodic
    ones nperiods is ignored. The value includes the MJDREF and TIMEZERO contributions.

    Args:
        lc (LightCurve or KRLightCurve): the light curve
        kk (int): bin index
        nperiods (int): number of elapsed periods
        mjdref (float): MJD of the reference time of the requested time scale [d]

    Returns:
        float: time [s]
    """
    match lc.timing:
        case NonPeriodicTiming(time=time):
            return float(time[kk]) + _offset(lc, mjdref)
        case PeriodicTiming(phase=phase, phase0=phase0, period=period):
            return (float(phase[kk]) - phase0 + nperiods) * period + _offset(lc, mjdref)


def bin_at(lc, time, mjdref):
    """
    Determine the light curve bin containing the specified time.

    The returned index is the smallest k with time_at(k+1) >= time (binary search).

    Args:
        lc (LightCurve or KRLightCurve): the light curve
        time (float): requested time [s]
        mjdref (float): MJD of the reference time [d]

    Returns:
        tuple: (kk, nperiods); nperiods is 0 for non-periodic light curves

    Raises:
        LightCurveRangeError: If the time is outside the interval covered by a non-periodic light curve.
    """
    last = lc.nentries - 1
    match lc.timing:
        case NonPeriodicTiming(time=grid):
            t_first = time_at(lc, 0, 0, mjdref)
            t_last = time_at(lc, last, 0, mjdref)
            if time < t_first or time > t_last:
                raise LightCurveRangeError(
                    f"requested time ({time / SECONDS_PER_DAY + mjdref:f} MJD) is outside the interval covered "
                    f"by the light curve '{lc.fileref}' ({t_first / SECONDS_PER_DAY + mjdref:f} to "
                    f"{t_last / SECONDS_PER_DAY + mjdref:f} MJD)")
            nperiods = 0
            value = time - _offset(lc, mjdref)
        case PeriodicTiming(phase=grid, phase0=phase0, period=period):
            dt = time - time_at(lc, 0, 0, mjdref)
            nperiods = math.floor(dt / period)
            value = (time - _offset(lc, mjdref)) / period + phase0 - nperiods

    kk = int(np.searchsorted(grid[1:], value, side='left'))
    return min(max(kk, 0), last - 1), nperiods


def covers(lc, time, mjdref):
    """
    Return True if time lies within the interval [start, end) covered by the light curve.
    Periodic light curves cover all times.
    """
    if lc.is_periodic:
        return True
    return time_at(lc, 0, 0, mjdref) <= time < time_at(lc, lc.nentries - 1, 0, mjdref)
