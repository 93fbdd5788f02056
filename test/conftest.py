from simputsim import outputs
from simputsim.arf import ARF
from simputsim.spectrum import MIdpSpectrum
from simputsim.lightcurve import LightCurve, NonPeriodicTiming
from simputsim.psd import PowerSpectralDensity
from simputsim.image import image_wcs
import numpy as np
import pytest


class SequenceRandom():
    """
    Random number generator returning prescribed values, for tests that need to force
    the outcome of a draw.
    """
    def __init__(self, values, cycle=False):
        self.values = list(values)
        self.cycle = cycle
        self.ncalls = 0

    def __call__(self):
        if self.ncalls >= len(self.values):
            if not self.cycle:
                raise IndexError("SequenceRandom ran out of values")
            value = self.values[self.ncalls % len(self.values)]
        else:
            value = self.values[self.ncalls]
        self.ncalls += 1
        return value


@pytest.fixture
def sequence_random():
    return SequenceRandom


@pytest.fixture
def simple_arf():
    # 4 bins from 1 to 5 keV
    return ARF([1., 2., 3., 4.], [2., 3., 4., 5.], [10., 20., 30., 40.])


@pytest.fixture
def flat_spectrum():
    # 1 photon/s/cm^2/keV from 0.5 to 10 keV
    energy = np.linspace(0.5, 10., 20)
    return MIdpSpectrum(energy, np.ones_like(energy), name='flat', fileref='flat.fits[SPECTRUM]')


@pytest.fixture
def simput_files(tmp_path, simple_arf, flat_spectrum):
    """
    Write a small SIMPUT catalog with all kinds of extensions to a temporary directory.

    Sources (rows):
        0: point source with the flat spectrum, constant brightness
        1: point source with the flat spectrum and a light curve file (0-100 s, rising)
        2: point source with the flat spectrum and a PSD
        3: extended source with an image
        4: source with spectrum and position from a photon list
    """
    arf_file = outputs.save_hdu_to_fits([outputs.create_arf_hdu(simple_arf)],
                                        outdir=str(tmp_path), filename='test.arf')

    # Second spectrum with more flux, referred to by the light curve
    bright = MIdpSpectrum(flat_spectrum.energy, 2. * flat_spectrum.pflux, name='bright')
    spec_hdu = outputs.create_spectrum_hdu([flat_spectrum, bright])
    outputs.save_hdu_to_fits([spec_hdu], outdir=str(tmp_path), filename='spectra.fits')

    lc = LightCurve(NonPeriodicTiming([0., 50., 100.]), [1., 2., 3.],
                    spectrum=["[SPECTRUM][NAME=='flat']", "[SPECTRUM][NAME=='bright']", "[SPECTRUM][NAME=='bright']"])
    lc_hdu = outputs.create_lightcurve_hdu(lc)
    psd = PowerSpectralDensity([0.01, 0.1, 1.], [10., 1., 0.1])
    psd_hdu = outputs.create_psd_hdu(psd)
    outputs.save_hdu_to_fits([lc_hdu, psd_hdu, outputs.create_spectrum_hdu([flat_spectrum, bright])], outdir=str(tmp_path), filename='timing.fits')

    image = np.zeros((5, 5))
    image[2, 2] = 1.
    img_hdu = outputs.create_image_hdu(image, image_wcs(5, 5, 0.01))
    outputs.save_hdu_to_fits([img_hdu], outdir=str(tmp_path), filename='image.fits')

    ph_hdu = outputs.create_phlist_hdu([1.5, 2.5, 3.5], [0.1, 0.2, 359.9], [0.1, -0.2, 0.3])
    outputs.save_hdu_to_fits([ph_hdu], outdir=str(tmp_path), filename='phlist.fits')

    spectrum = "spectra.fits[SPECTRUM][NAME=='flat']"
    cat_hdu = outputs.create_catalog_hdu(
        src_id=[1, 2, 3, 4, 5],
        ra=[10., 20., 30., 40., 50.],
        dec=[-10., 0., 10., 20., 30.],
        e_min=[1., 1., 1., 1., 1.],
        e_max=[5., 5., 5., 5., 5.],
        flux=[1.e-11, 1.e-11, 1.e-11, 1.e-11, 1.e-11],
        spectrum=[spectrum, spectrum, spectrum, spectrum, 'phlist.fits[PHLIST]'],
        image=['NULL', 'NULL', 'NULL', 'image.fits[IMAGE]', 'phlist.fits[PHLIST]'],
        timing=['NULL', 'timing.fits[LIGHTCUR]', 'timing.fits[POWSPEC]', 'NULL', 'NULL'],
        src_name=['const', 'lc', 'psd', 'image', 'phlist'])
    cat_file = outputs.save_hdu_to_fits([cat_hdu], outdir=str(tmp_path), filename='catalog.fits')

    return {'dir': tmp_path, 'arf': arf_file, 'catalog': cat_file,
            'spectra': str(tmp_path / 'spectra.fits'), 'timing': str(tmp_path / 'timing.fits'),
            'image': str(tmp_path / 'image.fits'), 'phlist': str(tmp_path / 'phlist.fits')}
