from astropy.io import fits
from astropy.table import Table
import numpy as np
import os


def _string_format(values):
    width = max([len(value) for value in values] + [1])
    return f"{width}A"


def _simput_header(hdu, hduclas2, extname):
    hdu.header['EXTNAME'] = extname
    hdu.header['HDUCLASS'] = 'HEASARC/SIMPUT'
    hdu.header['HDUCLAS1'] = 'SIMPUT'
    hdu.header['HDUCLAS2'] = hduclas2
    hdu.header['HDUVERS'] = '1.1.0'
    return hdu


def create_catalog_hdu(src_id, ra, dec, e_min, e_max, flux, spectrum, image=None, timing=None,
                       src_name=None, imgrota=None, imgscal=None, extname='SRC_CAT'):
    """
    Create the source table of a SIMPUT catalog.

    Parameters
    ----------
    src_id : array_like of int
        Unique source identifiers (> 0).
    ra, dec : array_like
        Source positions [deg].
    e_min, e_max : array_like
        Reference energy band [keV].
    flux : array_like
        Energy flux in the reference band [erg/s/cm^2].
    spectrum : list of str
        References to the spectra.
    image, timing : list of str, optional
        References to the images and the timing extensions. Default is 'NULL'.
    src_name : list of str, optional
        Source names.
    imgrota : array_like, optional
        Image rotation angles [deg]. Default is 0.
    imgscal : array_like, optional
        Image scaling factors. Default is 1.
    extname : str, optional
        Name of the extension.

    Returns
    -------
    hdu : astropy.io.fits.BinTableHDU
    """
    nsrcs = len(src_id)
    if src_name is None:
        src_name = [''] * nsrcs
    if image is None:
        image = ['NULL'] * nsrcs
    if timing is None:
        timing = ['NULL'] * nsrcs
    if imgrota is None:
        imgrota = np.zeros(nsrcs)
    if imgscal is None:
        imgscal = np.ones(nsrcs)

    columns = [fits.Column(name='SRC_ID', format='J', array=np.asarray(src_id)),
               fits.Column(name='SRC_NAME', format=_string_format(src_name), array=np.asarray(src_name)),
               fits.Column(name='RA', format='D', unit='deg', array=np.asarray(ra)),
               fits.Column(name='DEC', format='D', unit='deg', array=np.asarray(dec)),
               fits.Column(name='IMGROTA', format='E', unit='deg', array=np.asarray(imgrota)),
               fits.Column(name='IMGSCAL', format='E', array=np.asarray(imgscal)),
               fits.Column(name='E_MIN', format='E', unit='keV', array=np.asarray(e_min)),
               fits.Column(name='E_MAX', format='E', unit='keV', array=np.asarray(e_max)),
               fits.Column(name='FLUX', format='D', unit='erg/s/cm**2', array=np.asarray(flux)),
               fits.Column(name='SPECTRUM', format=_string_format(spectrum), array=np.asarray(spectrum)),
               fits.Column(name='IMAGE', format=_string_format(image), array=np.asarray(image)),
               fits.Column(name='TIMING', format=_string_format(timing), array=np.asarray(timing))]
    return _simput_header(fits.BinTableHDU.from_columns(columns), 'SRC_CAT', extname)


def create_spectrum_hdu(spectra, extname='SPECTRUM'):
    """
    Create a table with one mission-independent spectrum per row.

    All spectra must have the same number of data points (fixed-length vector columns).

    Parameters
    ----------
    spectra : list of simputsim.spectrum.MIdpSpectrum
        The spectra. Their names are stored in the NAME column.
    extname : str, optional
        Name of the extension.

    Returns
    -------
    hdu : astropy.io.fits.BinTableHDU
    """
    nentries = {spec.nentries for spec in spectra}
    if len(nentries) != 1:
        raise ValueError("all spectra in one extension must have the same number of data points")
    nentries = nentries.pop()
    names = [spec.name for spec in spectra]

    columns = [fits.Column(name='ENERGY', format=f'{nentries}E', unit='keV',
                           array=np.array([spec.energy for spec in spectra])),
               fits.Column(name='FLUXDENSITY', format=f'{nentries}E', unit='photon/s/cm**2/keV',
                           array=np.array([spec.pflux for spec in spectra])),
               fits.Column(name='NAME', format=_string_format(names), array=np.asarray(names))]
    return _simput_header(fits.BinTableHDU.from_columns(columns), 'SPECTRUM', extname)


def create_lightcurve_hdu(lc, extname='LIGHTCUR'):
    """
    Create a light curve table.

    Parameters
    ----------
    lc : simputsim.lightcurve.LightCurve
        The light curve. Periodic light curves are stored with a PHASE column and the
        PHASE0/PERIOD/DPERIOD keywords, non-periodic ones with a TIME column.
    extname : str, optional
        Name of the extension.

    Returns
    -------
    hdu : astropy.io.fits.BinTableHDU
    """
    if lc.is_periodic:
        columns = [fits.Column(name='PHASE', format='D', array=lc.timing.phase)]
    else:
        columns = [fits.Column(name='TIME', format='D', unit='s', array=lc.timing.time)]
    columns.append(fits.Column(name='FLUX', format='E', array=lc.flux))
    if lc.spectrum is not None:
        columns.append(fits.Column(name='SPECTRUM', format=_string_format(lc.spectrum), array=np.asarray(lc.spectrum)))
    if lc.image is not None:
        columns.append(fits.Column(name='IMAGE', format=_string_format(lc.image), array=np.asarray(lc.image)))

    hdu = _simput_header(fits.BinTableHDU.from_columns(columns), 'LIGHTCURVE', extname)
    hdu.header['MJDREF'] = lc.mjdref
    hdu.header['TIMEZERO'] = lc.timezero
    hdu.header['FLUXSCAL'] = lc.fluxscal
    if lc.is_periodic:
        hdu.header['PHASE0'] = lc.timing.phase0
        hdu.header['PERIOD'] = lc.timing.period
        hdu.header['DPERIOD'] = lc.timing.dperiod
    return hdu


def create_psd_hdu(psd, extname='POWSPEC'):
    """
    Create a PSD table (Miyamoto normalization).
    """
    columns = [fits.Column(name='FREQUENCY', format='E', unit='Hz', array=psd.frequency),
               fits.Column(name='POWER', format='E', unit='1/Hz', array=psd.power)]
    return _simput_header(fits.BinTableHDU.from_columns(columns), 'POWSPEC', extname)


def create_image_hdu(data, wcs, fluxscal=1., extname='IMAGE'):
    """
    Create a source image extension.

    Parameters
    ----------
    data : numpy.ndarray
        2D pixel values with shape (NAXIS2, NAXIS1).
    wcs : astropy.wcs.WCS
        Celestial coordinate system of the image, axes in degrees.
    fluxscal : float, optional
        Flux scaling factor.
    extname : str, optional
        Name of the extension.

    Returns
    -------
    hdu : astropy.io.fits.ImageHDU
    """
    hdu = fits.ImageHDU(np.asarray(data, dtype=np.float32), header=wcs.to_header())
    hdu.header['FLUXSCAL'] = fluxscal
    return _simput_header(hdu, 'IMAGE', extname)


def create_phlist_hdu(energy, ra, dec, extname='PHLIST'):
    """
    Create a photon list table. RA and DEC are given in [deg], the energies in [keV].
    """
    columns = [fits.Column(name='RA', format='D', unit='deg', array=np.asarray(ra)),
               fits.Column(name='DEC', format='D', unit='deg', array=np.asarray(dec)),
               fits.Column(name='ENERGY', format='E', unit='keV', array=np.asarray(energy))]
    return _simput_header(fits.BinTableHDU.from_columns(columns), 'PHOTONS', extname)


def create_arf_hdu(arf, extname='SPECRESP'):
    """
    Create the SPECRESP extension of an ARF file.
    """
    columns = [fits.Column(name='ENERG_LO', format='E', unit='keV', array=arf.energ_lo),
               fits.Column(name='ENERG_HI', format='E', unit='keV', array=arf.energ_hi),
               fits.Column(name='SPECRESP', format='E', unit='cm**2', array=arf.specresp)]
    hdu = fits.BinTableHDU.from_columns(columns)
    hdu.header['EXTNAME'] = extname
    hdu.header['HDUCLASS'] = 'OGIP'
    hdu.header['HDUCLAS1'] = 'RESPONSE'
    hdu.header['HDUCLAS2'] = 'SPECRESP'
    return hdu


def create_event_hdu(photons, mjdref=0., sim_info=None, extname='EVENTS'):
    """
    Create a table of generated photons.

    Parameters
    ----------
    photons : astropy.table.Table
        Table with the columns TIME [s], ENERGY [keV], RA, DEC [rad] and SRC_ID.
    mjdref : float, optional
        MJD of the reference time of the TIME column.
    sim_info : dict, optional
        Key-value metadata added as header comments.
    extname : str, optional
        Name of the extension.

    Returns
    -------
    hdu : astropy.io.fits.BinTableHDU
    """
    table = Table(photons, copy=True)
    table['RA'] = np.degrees(table['RA'])
    table['DEC'] = np.degrees(table['DEC'])
    table['TIME'].unit = 's'
    table['ENERGY'].unit = 'keV'
    table['RA'].unit = 'deg'
    table['DEC'].unit = 'deg'
    hdu = fits.table_to_hdu(table)
    hdu.header['EXTNAME'] = extname
    hdu.header['MJDREF'] = mjdref

    if sim_info:
        hdu.header['COMMENT'] = "Simulation-specific metadata below:"
        for key, value in sim_info.items():
            hdu.header.add_comment(f"{key} : {value}")
    return hdu


def save_hdu_to_fits(hdus, outdir=None, overwrite=True, filename=None):
        """
        Save extensions to a FITS file with an empty primary HDU in front.

        Parameters:
        - hdus (list of astropy.io.fits HDUs or astropy.io.fits.HDUList): the extensions to be saved.
        - outdir (str, optional): Output directory. Defaults to the current working directory.
        - overwrite (bool): If True, overwrite the file if it already exists. Default is True.
        - filename (str): Name of the output FITS file.

        Returns:
        - str: path of the written file
        """
        if filename is None:
            raise ValueError("Filename must be provided.")

        if outdir is None:
            outdir = os.getcwd()

        os.makedirs(outdir, exist_ok=True)

        if isinstance(hdus, fits.HDUList):
            hdul = hdus
        else:
            hdul = fits.HDUList([fits.PrimaryHDU()] + list(hdus))

        # Construct full file path
        filepath = os.path.join(outdir, filename)

        # Write the HDUList to file
        hdul.writeto(filepath, overwrite=overwrite)
        print(f"Saved FITS file to: {filepath}")
        return filepath
