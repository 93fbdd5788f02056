import math
import numpy as np

from simputsim.exceptions import SimputConfigError
from simputsim.spectrum import KEV2ERG


class SimputPhList():
    '''
    External list of individual photons (energy and position).

    Photons are drawn from the list with rejection sampling against the instrument ARF:
    a photon with energy E is accepted with the probability effarea(E)/refarea, where
    refarea is the maximum effective area of the ARF.

    Arguments:
        energy (array): photon energies [keV]
        ra (array): right ascensions [rad]
        dec (array): declinations [rad]
        fileref (str, optional): resolved reference to the storage location

    Raises:
        ValueError: If the arrays are empty or have different lengths.
    '''
    def __init__(self, energy, ra, dec, fileref=''):
        self.energy = np.asarray(energy, dtype=float)
        self.ra = np.asarray(ra, dtype=float)
        self.dec = np.asarray(dec, dtype=float)
        if not (self.energy.shape == self.ra.shape == self.dec.shape) or self.energy.ndim != 1:
            raise ValueError("ENERGY, RA and DEC must be 1D arrays of the same length")
        if self.energy.size == 0:
            raise ValueError(f"the photon list '{fileref}' does not contain any photons")
        self.fileref = fileref
        self.refarea = 0.
        self._refarea_arf = None

    @property
    def nphs(self):
        return self.energy.size

    def reference_area(self, arf):
        """
        Return the maximum effective area of the ARF. It is determined again whenever a
        different ARF is passed.

        Raises:
            SimputConfigError: If the ARF is undefined or its maximum effective area is not positive.
        """
        if self.refarea == 0. or arf is not self._refarea_arf:
            if arf is None:
                raise SimputConfigError("instrument ARF undefined")
            refarea = arf.max_effarea
            # Otherwise the rejection sampling would never accept a photon.
            if not refarea > 0.:
                raise SimputConfigError("the maximum effective area of the ARF must be positive")
            self.refarea = refarea
            self._refarea_arf = arf
        return self.refarea

    def draw(self, arf, rndgen):
        """
        Draw a photon from the list.

        The loop is repeated until a photon is accepted. The acceptance probability is
        positive as long as the list contains photons within the ARF range.

        Args:
            arf (simputsim.arf.ARF): instrument response
            rndgen (simputsim.rndgen.RandomSource): random numbers

        Returns:
            tuple: (energy [keV], ra [rad], dec [rad])
        """
        refarea = self.reference_area(arf)
        while True:
            ii = min(int(rndgen.uniform() * self.nphs), self.nphs - 1)
            energy = float(self.energy[ii])
            if rndgen.uniform() < arf.effarea(energy) / refarea:
                return energy, float(self.ra[ii]), float(self.dec[ii])

    def refband_flux(self, emin, emax):
        """
        Sum of the photon energies within the reference band [erg].
        """
        inband = (self.energy >= emin) & (self.energy <= emax)
        return float(np.sum(self.energy[inband])) * KEV2ERG

    def refnumber(self, arf):
        """
        Sum of the ARF values at the photon energies [photons*cm^2].
        """
        idx = np.minimum(np.searchsorted(arf.energ_hi, self.energy, side='left'), arf.nbins - 1)
        return float(np.sum(arf.specresp[idx]))

    def extension(self):
        """
        Maximum angular distance of a photon from the origin of the coordinates [rad].
        """
        ra = np.where(self.ra > math.pi, self.ra - 2. * math.pi, self.ra)
        return float(np.max(np.hypot(ra, self.dec)))
