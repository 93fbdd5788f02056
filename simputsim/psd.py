import math
import numpy as np
from scipy import fft

from simputsim.lightcurve import LightCurve, NonPeriodicTiming


class PowerSpectralDensity():
    '''
    Power spectral density of a source in Miyamoto normalization.

    Arguments:
        frequency (array): frequencies [Hz], ascending and positive
        power (array): power density [1/Hz]
        fileref (str, optional): resolved reference to the storage location

    Raises:
        ValueError: If the arrays are empty, have different lengths or the frequencies are not ascending.
    '''
    def __init__(self, frequency, power, fileref=''):
        self.frequency = np.asarray(frequency, dtype=float)
        self.power = np.asarray(power, dtype=float)
        if self.frequency.ndim != 1 or self.frequency.shape != self.power.shape:
            raise ValueError("FREQUENCY and POWER must be 1D arrays of the same length")
        if self.frequency.size == 0:
            raise ValueError("the PSD does not contain any data points")
        if np.any(np.diff(self.frequency) <= 0.) or self.frequency[0] <= 0.:
            raise ValueError("the frequencies of the PSD must be positive and strictly ascending")
        self.frequency.flags.writeable = False
        self.power.flags.writeable = False
        self.fileref = fileref

    @property
    def nentries(self):
        return self.frequency.size

    @property
    def max_frequency(self):
        return float(self.frequency[-1])

    def binned_power(self, nbins):
        """
        Interpolate the PSD onto a uniform frequency grid and weight it with the bin width.

        The grid points are f_j = (j+1)*f_max/nbins. Below the first tabulated frequency
        the power is set to 0.

        Args:
            nbins (int): number of frequency bins

        Returns:
            numpy.ndarray: power per frequency bin (unitless)
        """
        delta_f = self.max_frequency / nbins
        grid = (np.arange(nbins) + 1) * delta_f
        power = np.interp(grid, self.frequency, self.power)
        power[grid <= self.frequency[0]] = 0.
        return power * delta_f


def lightcurve_from_psd(psd, rndgen, t0, mjdref, src_id, nbins=2**16):
    """
    Generate a light curve realization from a PSD with the algorithm of Timmer & Koenig (1995).

    Each positive frequency gets a complex Fourier coefficient with Gaussian real and imaginary
    parts. The inverse real FFT gives a time series of 2*nbins data points, which is rescaled
    to the RMS required by the PSD. Negative fluxes are set to 0.

    Args:
        psd (PowerSpectralDensity): the PSD
        rndgen (simputsim.rndgen.RandomSource): random numbers for the Fourier coefficients
        t0 (float): start time of the light curve [s], stored as TIMEZERO
        mjdref (float): MJD of the reference time [d]
        src_id (int): source the realization belongs to
        nbins (int, optional): number of frequency bins, a power of two. Default is 2**16.

    Returns:
        simputsim.lightcurve.LightCurve: light curve with 2*nbins data points and FLUXSCAL=1

    Raises:
        ValueError: If nbins is not a power of two.
    """
    if nbins < 2 or (nbins & (nbins - 1)) != 0:
        raise ValueError(f"the number of PSD bins must be a power of two, got {nbins}")

    power = psd.binned_power(nbins)
    coeffs = np.zeros(nbins + 1, dtype=complex)
    coeffs[0] = 1.

    # The imaginary part of the first draw determines the Nyquist coefficient.
    _, randi = rndgen.gauss_pair()
    coeffs[nbins] = randi * math.sqrt(power[-1] / 2.)
    for kk in range(1, nbins):
        randr, randi = rndgen.gauss_pair()
        coeffs[kk] = complex(randr, randi) * math.sqrt(power[kk - 1] / 2.)

    flux = fft.irfft(coeffs, n=2 * nbins, norm='forward')

    requ_rms = math.sqrt(1. + np.sum(power) / 2.)
    act_rms = math.sqrt(np.mean(flux**2))
    if act_rms > 0.:
        flux *= requ_rms / act_rms
    flux[flux < 0.] = 0.

    time = np.arange(2 * nbins) / (2. * psd.max_frequency)
    return LightCurve(NonPeriodicTiming(time), flux, mjdref=mjdref, timezero=t0,
                      fluxscal=1., src_id=src_id, fileref=psd.fileref)
