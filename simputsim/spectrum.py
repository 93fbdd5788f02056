import warnings
import numpy as np
import astropy.units as u
from synphot import units

from simputsim.exceptions import SimputConfigError

# Conversion factor from keV to erg.
KEV2ERG = (1. * u.keV).to_value(u.erg)


class MIdpSpectrum():
    '''
    A mission-independent spectrum: photon flux density tabulated on an energy grid.

    The spectral bin of each tabulated energy extends to the midpoints between the
    neighbouring energies. The outer edges of the first and the last bin are the
    tabulated energies themselves.

    Arguments:
        energy (array): energy values [keV], ascending
        pflux (array): photon flux density [photons/s/cm^2/keV]
        name (str, optional): designator of the spectrum. Default is ''.
        fileref (str, optional): resolved reference to the storage location. Default is ''.

    Raises:
        ValueError: If the arrays are empty, have different lengths, or energy is not ascending.
    '''
    def __init__(self, energy, pflux, name='', fileref=''):
        self.energy = np.asarray(energy, dtype=float)
        self.pflux = np.asarray(pflux, dtype=float)
        if self.energy.ndim != 1 or self.energy.shape != self.pflux.shape:
            raise ValueError("energy and pflux must be 1D arrays of the same length")
        if self.energy.size == 0:
            raise ValueError("the spectrum does not contain any data points")
        if np.any(np.diff(self.energy) < 0.):
            raise ValueError("the energy values of the spectrum must be ascending")
        self.energy.flags.writeable = False
        self.pflux.flags.writeable = False
        self.name = name
        self.fileref = fileref

    @property
    def nentries(self):
        return self.energy.size

    def ebounds(self, idx=None):
        """
        Return the lower and upper boundaries of the spectral bins [keV].

        Args:
            idx (int, optional): index of a single bin. If None, arrays for all bins are returned.

        Returns:
            tuple: (emin, emax)
        """
        mid = 0.5 * (self.energy[1:] + self.energy[:-1])
        emin = np.concatenate(([self.energy[0]], mid))
        emax = np.concatenate((mid, [self.energy[-1]]))
        if idx is None:
            return emin, emax
        return float(emin[idx]), float(emax[idx])

    def band_flux(self, emin, emax):
        """
        Determine the energy flux of the spectrum within an energy band.

        Args:
            emin (float): lower boundary of the band [keV]
            emax (float): upper boundary of the band [keV]

        Returns:
            float: energy flux [erg/s/cm^2]
        """
        binmin, binmax = self.ebounds()
        overlap = np.clip(np.minimum(binmax, emax) - np.maximum(binmin, emin), 0., None)
        return float(np.sum(overlap * self.pflux * self.energy)) * KEV2ERG

    @classmethod
    def from_synphot(cls, sp, energy, name='', fileref=''):
        """
        Evaluate a synphot source spectrum on an energy grid.

        Args:
            sp (synphot.SourceSpectrum): the spectral model
            energy (array or Quantity): energy grid, in keV if no unit is attached
            name (str, optional): designator of the spectrum
            fileref (str, optional): reference used as cache key

        Returns:
            MIdpSpectrum: photon flux density in [photons/s/cm^2/keV]
        """
        energy = u.Quantity(energy, u.keV).to(u.keV, equivalencies=u.spectral())
        wave = energy.to(u.AA, equivalencies=u.spectral())
        photnu = units.convert_flux(wave, sp(wave), units.PHOTNU)
        # photons/s/cm^2/Hz -> photons/s/cm^2/keV
        hz_per_kev = (1. * u.keV).to_value(u.Hz, equivalencies=u.spectral())
        return cls(energy.value, photnu.value * hz_per_kev, name=name, fileref=fileref)


class SpectralDistribution():
    '''
    Cumulative photon rate distribution on the energy grid of an ARF.

    Arguments:
        distribution (array): cumulative, non-decreasing; last element is the total rate [photons/s]
        fileref (str, optional): reference of the mission-independent spectrum it was built from
    '''
    def __init__(self, distribution, fileref=''):
        self.distribution = np.asarray(distribution, dtype=float)
        self.fileref = fileref

    @property
    def total(self):
        return float(self.distribution[-1])

    def channel(self, rnd):
        """
        Binary search for the smallest index k with distribution[k] >= rnd*total.

        Args:
            rnd (float): uniform random number in [0,1]

        Returns:
            int: ARF bin index
        """
        scaled = rnd * self.distribution[-1]
        idx = int(np.searchsorted(self.distribution, scaled, side='left'))
        return min(idx, self.distribution.size - 1)

    def sample_energy(self, arf, rndgen):
        """
        Draw a photon energy [keV].

        Args:
            arf (simputsim.arf.ARF): the response the distribution was built with
            rndgen (simputsim.rndgen.RandomSource): random numbers

        Returns:
            float: energy uniformly distributed within the selected ARF bin
        """
        if arf.nbins != self.distribution.size:
            raise SimputConfigError("spectral distribution does not match the energy grid of the ARF")
        kk = self.channel(rndgen.uniform())
        return float(arf.energ_lo[kk] + rndgen.uniform() * (arf.energ_hi[kk] - arf.energ_lo[kk]))


def convolve_with_arf(midpspec, arf):
    """
    Convolve a mission-independent spectrum with the instrument ARF.

    The spectral bins and the ARF bins are walked in a single pass. For each ARF bin the
    overlap with every spectral bin is weighted with the effective area and the photon flux
    density. The result is summed up into a cumulative distribution.

    Args:
        midpspec (MIdpSpectrum): the spectrum
        arf (simputsim.arf.ARF): the instrument response

    Returns:
        SpectralDistribution: cumulative distribution [photons/s] on the ARF energy grid

    Raises:
        SimputConfigError: If the ARF is undefined.

    Notes:
        If the spectrum does not cover the full energy range of the ARF a warning is issued
        and the uncovered range contributes no photons.
    """
    if arf is None:
        raise SimputConfigError("instrument ARF undefined")

    spec_emin_all, spec_emax_all = midpspec.ebounds()
    nspec = midpspec.nentries
    distribution = np.zeros(arf.nbins)
    warning_printed = False

    jj = 0
    for ii in range(arf.nbins):
        arf_lo = arf.energ_lo[ii]
        arf_hi = arf.energ_hi[ii]
        lo = arf_lo
        contribution = 0.

        while True:
            # Next spectral bin reaching above the current lower boundary.
            while jj < nspec and spec_emax_all[jj] <= lo:
                jj += 1

            if jj == nspec:
                if not warning_printed:
                    warnings.warn(f"the spectrum '{midpspec.fileref}' does not cover the full energy range of the ARF")
                    warning_printed = True
                break

            spec_emin = spec_emin_all[jj]
            spec_emax = spec_emax_all[jj]
            if jj == 0 and spec_emin > lo:
                if not warning_printed:
                    warnings.warn(f"the spectrum '{midpspec.fileref}' does not cover the full energy range of the ARF")
                    warning_printed = True
                if spec_emin >= arf_hi:
                    break
                lo = spec_emin

            if spec_emax <= arf_hi:
                hi = spec_emax
                finished = False
            else:
                hi = arf_hi
                finished = True

            contribution += (hi - lo) * arf.specresp[ii] * midpspec.pflux[jj]
            lo = hi
            if finished or hi >= arf_hi:
                break

        distribution[ii] = contribution
        if ii > 0:
            distribution[ii] += distribution[ii - 1]

    return SpectralDistribution(distribution, fileref=midpspec.fileref)
