import numpy as np
from astropy.io import fits
import astropy.units as u


class ARF():
    '''
    Instrument effective area response (ancillary response function).

    The bins are ordered ascending in energy and must not overlap.

    Arguments:
        energ_lo (array): lower bin boundaries [keV]
        energ_hi (array): upper bin boundaries [keV]
        specresp (array): effective area of each bin [cm^2]

    Raises:
        ValueError: If the arrays have different lengths, are empty, or the grid is not ascending.
    '''
    def __init__(self, energ_lo, energ_hi, specresp):
        self.energ_lo = np.asarray(energ_lo, dtype=float)
        self.energ_hi = np.asarray(energ_hi, dtype=float)
        self.specresp = np.asarray(specresp, dtype=float)

        if not (self.energ_lo.shape == self.energ_hi.shape == self.specresp.shape) or self.energ_lo.ndim != 1:
            raise ValueError("ENERG_LO, ENERG_HI and SPECRESP must be 1D arrays of the same length")
        if self.energ_lo.size == 0:
            raise ValueError("the ARF does not contain any energy bins")
        if np.any(self.energ_hi < self.energ_lo) or np.any(np.diff(self.energ_lo) < 0.):
            raise ValueError("the energy grid of the ARF must be ascending")
        if np.any(self.specresp < 0.):
            raise ValueError("the effective area must not be negative")

    @property
    def nbins(self):
        return self.energ_lo.size

    @property
    def max_effarea(self):
        return float(self.specresp.max())

    def channel(self, energy):
        """
        Return the index of the bin containing energy (binary search).

        The smallest index with an upper boundary not below the energy is returned.
        Energies above the grid are mapped to the last bin.

        Args:
            energy (float): photon energy [keV]

        Returns:
            int: bin index
        """
        idx = int(np.searchsorted(self.energ_hi, energy, side='left'))
        return min(idx, self.nbins - 1)

    def effarea(self, energy):
        """
        Return the effective area [cm^2] at the given energy [keV].
        """
        return float(self.specresp[self.channel(energy)])

    @classmethod
    def from_fits(cls, filename, extname='SPECRESP'):
        """
        Load an ARF from the SPECRESP extension of a FITS file.

        Args:
            filename (str): path to the FITS file
            extname (str, optional): name of the extension. Default is 'SPECRESP'.

        Returns:
            ARF: the response

        Raises:
            FileNotFoundError: If the file does not exist.
            KeyError: If the extension or a required column is missing.
        """
        with fits.open(filename) as hdul:
            hdu = hdul[extname]
            factors = []
            for column, target in [('ENERG_LO', u.keV), ('ENERG_HI', u.keV), ('SPECRESP', u.cm**2)]:
                unit = hdu.columns[column].unit
                factors.append(1. if not unit else u.Unit(unit).to(target, equivalencies=u.spectral()))
            return cls(np.array(hdu.data['ENERG_LO'], dtype=float) * factors[0],
                       np.array(hdu.data['ENERG_HI'], dtype=float) * factors[1],
                       np.array(hdu.data['SPECRESP'], dtype=float) * factors[2])
