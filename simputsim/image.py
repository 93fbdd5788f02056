import math
import numpy as np
from astropy.wcs import WCS

from simputsim.exceptions import SimputConfigError


class SimputImage():
    '''
    Source image with its cumulative pixel distribution.

    dist[x, y] is the cumulative sum over the pixels, running over y first and then over x
    (x along NAXIS1, y along NAXIS2). dist[-1, -1] is the total image intensity.

    Arguments:
        data (2D array): pixel values as stored in the FITS HDU, i.e., shape (NAXIS2, NAXIS1)
        wcs (astropy.wcs.WCS): celestial world coordinate system of the image
        fluxscal (float, optional): flux scaling factor. Default is 1.
        fileref (str, optional): resolved reference to the storage location

    Raises:
        ValueError: If the image is not 2D or contains negative pixel values.
    '''
    def __init__(self, data, wcs, fluxscal=1., fileref=''):
        data = np.asarray(data, dtype=float)
        if data.ndim != 2:
            raise ValueError(f"a source image must be 2D, got {data.ndim} dimensions")
        if np.any(data < 0.):
            raise ValueError("a source image must not contain negative pixel values")
        self.naxis2, self.naxis1 = data.shape
        self.dist = np.cumsum(data.T.ravel()).reshape(self.naxis1, self.naxis2)
        self.wcs = wcs
        self.fluxscal = float(fluxscal)
        self.fileref = fileref

    @property
    def total(self):
        return float(self.dist[-1, -1])

    def pixel(self, rnd):
        """
        Find the pixel containing the scaled random number with two nested binary searches.

        The first search runs over the last row of the distribution and selects x, the second
        one runs within column x and selects y.

        Args:
            rnd (float): uniform random number in [0,1)

        Returns:
            tuple: (x, y) 0-based pixel indices
        """
        scaled = rnd * self.dist[-1, -1]
        xl = int(np.searchsorted(self.dist[:, -1], scaled, side='left'))
        xl = min(xl, self.naxis1 - 1)
        yl = int(np.searchsorted(self.dist[xl, :], scaled, side='left'))
        yl = min(yl, self.naxis2 - 1)
        return xl, yl

    def source_wcs(self, ra, dec, imgscal):
        """
        Copy of the image WCS with the reference position moved to the source and the pixel
        scale divided by IMGSCAL.

        Args:
            ra (float): right ascension of the source [rad]
            dec (float): declination of the source [rad]
            imgscal (float): image scaling factor of the source

        Returns:
            astropy.wcs.WCS

        Raises:
            SimputConfigError: If the image axes are not given in degrees.
        """
        wcs = self.wcs.deepcopy()
        wcs.wcs.set()
        cunit = [str(unit) for unit in wcs.wcs.cunit]
        if any(unit not in ('deg', 'degree') for unit in cunit):
            raise SimputConfigError(f"units of image coordinates are '{cunit[0]}' and '{cunit[1]}' (must be 'deg')")

        wcs.wcs.crval = [math.degrees(ra), math.degrees(dec)]
        if wcs.wcs.has_cd():
            wcs.wcs.cd = wcs.wcs.cd / imgscal
        else:
            wcs.wcs.cdelt = wcs.wcs.cdelt / imgscal
        wcs.wcs.set()
        return wcs

    def sample_position(self, src, rndgen):
        """
        Draw a photon position from the image.

        Args:
            src (simputsim.catalog.SimputSource): provides ra, dec, imgrota and imgscal
            rndgen (simputsim.rndgen.RandomSource): random numbers

        Returns:
            tuple: (ra, dec) [rad], ra within [0, 2pi)
        """
        if not self.total > 0.:
            raise SimputConfigError(f"the image '{self.fileref}' does not contain any flux")

        xl, yl = self.pixel(rndgen.uniform())
        wcs = self.source_wcs(src.ra, src.dec, src.imgscal)

        # FITS pixel coordinates (1-based) with randomization over the pixel.
        xd = xl + 0.5 + rndgen.uniform()
        yd = yl + 0.5 + rndgen.uniform()

        # Rotation by IMGROTA around the reference pixel.
        crpix1, crpix2 = wcs.wcs.crpix
        cosr = math.cos(src.imgrota)
        sinr = math.sin(src.imgrota)
        xdrot = (xd - crpix1) * cosr + (yd - crpix2) * sinr + crpix1
        ydrot = -(xd - crpix1) * sinr + (yd - crpix2) * cosr + crpix2

        world = wcs.wcs_pix2world(np.array([[xdrot, ydrot]]), 1)
        ra = math.radians(world[0, 0]) % (2. * math.pi)
        dec = math.radians(world[0, 1])
        return ra, dec

    def extension(self, imgscal):
        """
        Maximum angular distance of the image corners from the reference position [rad].

        Args:
            imgscal (float): image scaling factor of the source

        Returns:
            float
        """
        wcs = self.source_wcs(0., 0., imgscal)
        corners = np.array([[0.5, 0.5],
                            [self.naxis1 + 0.5, 0.5],
                            [0.5, self.naxis2 + 0.5],
                            [self.naxis1 + 0.5, self.naxis2 + 0.5]])
        world = np.radians(wcs.wcs_pix2world(corners, 1))
        sx = np.where(world[:, 0] > math.pi, world[:, 0] - 2. * math.pi, world[:, 0])
        return float(np.max(np.hypot(sx, world[:, 1])))


def image_wcs(naxis1, naxis2, cdelt, crpix=None, ctype=('RA---TAN', 'DEC--TAN')):
    """
    Create a simple celestial WCS for a source image.

    Args:
        naxis1 (int): number of pixels along the first axis
        naxis2 (int): number of pixels along the second axis
        cdelt (float): pixel size [deg]
        crpix (tuple, optional): reference pixel. Defaults to the image center.
        ctype (tuple, optional): axis types. Default is gnomonic projection.

    Returns:
        astropy.wcs.WCS
    """
    wcs = WCS(naxis=2)
    wcs.wcs.ctype = list(ctype)
    wcs.wcs.cunit = ['deg', 'deg']
    wcs.wcs.crpix = list(crpix) if crpix is not None else [(naxis1 + 1) / 2., (naxis2 + 1) / 2.]
    wcs.wcs.crval = [0., 0.]
    wcs.wcs.cdelt = [-cdelt, cdelt]
    return wcs
