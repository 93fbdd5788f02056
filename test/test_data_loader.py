from simputsim import data_loader, outputs
from simputsim.data_loader import ExtType, parse_fileref, is_null_ref, get_ext_type
from simputsim.lightcurve import LightCurve, PeriodicTiming, NonPeriodicTiming
from simputsim.exceptions import SimputConfigError
from astropy.io import fits
import numpy as np
import math
import os
import pytest


def test_parse_fileref():
    assert parse_fileref('a.fits') == ('a.fits', None, None)
    assert parse_fileref('dir/a.fits[SPECTRUM]') == ('dir/a.fits', 'SPECTRUM', None)
    assert parse_fileref('a.fits[SPECTRUM,2]') == ('a.fits', ('SPECTRUM', 2), None)
    assert parse_fileref('a.fits[3]') == ('a.fits', 3, None)
    assert parse_fileref("a.fits[SPECTRUM][NAME=='flat']") == ('a.fits', 'SPECTRUM', ('NAME', 'flat'))
    assert parse_fileref('a.fits[SPECTRUM][NAME=="hard one"]') == ('a.fits', 'SPECTRUM', ('NAME', 'hard one'))
    assert parse_fileref('a.fits[SPECTRUM][#ROW==2]') == ('a.fits', 'SPECTRUM', ('#ROW', 2))

    with pytest.raises(SimputConfigError):
        parse_fileref('a.fits[SPECTRUM][FLUX>2]')
    with pytest.raises(SimputConfigError):
        parse_fileref('a.fits[SPECTRUM,x]')
    with pytest.raises(SimputConfigError):
        parse_fileref('a.fits[SPECTRUM')


def test_null_refs():
    for ref in [None, '', '   ', 'NULL', ' NULL ']:
        assert is_null_ref(ref)
    assert not is_null_ref('a.fits')


def test_ext_types(simput_files):
    assert get_ext_type('') == ExtType.NONE
    assert get_ext_type(simput_files['spectra'] + "[SPECTRUM][NAME=='flat']") == ExtType.MIDPSPEC
    assert get_ext_type(simput_files['timing'] + '[LIGHTCUR]') == ExtType.LC
    assert get_ext_type(simput_files['timing'] + '[POWSPEC]') == ExtType.PSD
    assert get_ext_type(simput_files['timing'] + '[2]') == ExtType.PSD
    assert get_ext_type(simput_files['image'] + '[IMAGE]') == ExtType.IMAGE
    assert get_ext_type(simput_files['phlist'] + '[PHLIST]') == ExtType.PHLIST


def test_ext_types_without_hduclas(tmp_path):
    psd = fits.BinTableHDU.from_columns([fits.Column(name='FREQUENCY', format='E', array=[1., 2.]),
                                         fits.Column(name='POWER', format='E', array=[1., 1.])], name='PSD')
    lc = fits.BinTableHDU.from_columns([fits.Column(name='PHASE', format='E', array=[0., 1.]),
                                        fits.Column(name='FLUX', format='E', array=[1., 1.])], name='LC')
    img = fits.ImageHDU(np.ones((3, 3)), name='IMG')
    other = fits.BinTableHDU.from_columns([fits.Column(name='X', format='E', array=[1.])], name='OTHER')
    path = outputs.save_hdu_to_fits([psd, lc, img, other], outdir=str(tmp_path), filename='plain.fits')

    assert get_ext_type(path + '[PSD]') == ExtType.PSD
    assert get_ext_type(path + '[LC]') == ExtType.LC
    assert get_ext_type(path + '[IMG]') == ExtType.IMAGE
    # The first HDU with data is used if no extension is given
    assert get_ext_type(path) == ExtType.PSD
    with pytest.raises(SimputConfigError):
        get_ext_type(path + '[OTHER]')
    with pytest.raises(SimputConfigError):
        get_ext_type(path + '[MISSING]')
    with pytest.raises(FileNotFoundError):
        get_ext_type(str(tmp_path / 'missing.fits') + '[PSD]')


def test_load_catalog(simput_files):
    columns = data_loader.load_catalog(simput_files['catalog'])
    assert list(columns['SRC_ID']) == [1, 2, 3, 4, 5]
    assert np.allclose(columns['RA'], np.radians([10., 20., 30., 40., 50.]))
    assert np.allclose(columns['DEC'], np.radians([-10., 0., 10., 20., 30.]))
    assert np.allclose(columns['E_MIN'], 1.)
    assert np.allclose(columns['FLUX'], 1.e-11)
    assert np.allclose(columns['IMGSCAL'], 1.)
    assert columns['TIMING'][1] == 'timing.fits[LIGHTCUR]'
    assert columns['IMAGE'][0] == 'NULL'
    assert columns['SRC_NAME'][4] == 'phlist'


def test_load_catalog_units_and_aliases(tmp_path):
    columns = [fits.Column(name='SRC_ID', format='J', array=[7]),
               fits.Column(name='RA', format='D', unit='arcmin', array=[60.]),
               fits.Column(name='DEC', format='D', unit='rad', array=[0.5]),
               fits.Column(name='IMGROTA', format='E', unit='deg', array=[90.]),
               fits.Column(name='E_MIN', format='E', unit='eV', array=[500.]),
               fits.Column(name='E_MAX', format='E', unit='keV', array=[2.]),
               fits.Column(name='FLUX', format='E', unit='W/m**2', array=[1.e-14]),
               fits.Column(name='SPECTRUM', format='10A', array=['[SPEC]']),
               fits.Column(name='LIGHTCUR', format='10A', array=['[LC]'])]
    hdu = fits.BinTableHDU.from_columns(columns, name='SRC_CAT')
    path = outputs.save_hdu_to_fits([hdu], outdir=str(tmp_path), filename='cat.fits')

    cat = data_loader.load_catalog(path)
    assert cat['RA'][0] == pytest.approx(math.radians(1.))
    assert cat['DEC'][0] == pytest.approx(0.5)
    assert cat['IMGROTA'][0] == pytest.approx(math.pi / 2.)
    assert cat['E_MIN'][0] == pytest.approx(0.5)
    # 1 W/m^2 = 1000 erg/s/cm^2
    assert cat['FLUX'][0] == pytest.approx(1.e-11)
    assert cat['TIMING'][0] == '[LC]'
    assert cat['IMAGE'][0] == ''
    assert cat['SRC_NAME'][0] == ''


def test_load_catalog_errors(tmp_path):
    columns = [fits.Column(name='SRC_ID', format='J', array=[7]),
               fits.Column(name='RA', format='D', unit='furlong', array=[1.])]
    path = outputs.save_hdu_to_fits([fits.BinTableHDU.from_columns(columns, name='SRC_CAT')],
                                    outdir=str(tmp_path), filename='bad.fits')
    with pytest.raises(SimputConfigError):
        data_loader.load_catalog(path)
    with pytest.raises(FileNotFoundError):
        data_loader.load_catalog(str(tmp_path / 'nothing.fits'))


def test_load_midpspec(simput_files):
    path = simput_files['spectra']
    bright = data_loader.load_midpspec(path + "[SPECTRUM][NAME=='bright']")
    assert bright.name == 'bright'
    assert np.allclose(bright.pflux, 2.)
    assert np.allclose(bright.energy, np.linspace(0.5, 10., 20))
    assert bright.fileref == path + "[SPECTRUM][NAME=='bright']"

    assert data_loader.load_midpspec(path + '[SPECTRUM][#ROW==1]').name == 'flat'
    assert data_loader.load_midpspec(path + '[SPECTRUM]').name == 'flat'

    with pytest.raises(SimputConfigError):
        data_loader.load_midpspec(path + "[SPECTRUM][NAME=='missing']")
    with pytest.raises(SimputConfigError):
        data_loader.load_midpspec(path + '[SPECTRUM][#ROW==3]')


def test_load_scalar_spectrum(tmp_path):
    columns = [fits.Column(name='ENERGY', format='E', unit='eV', array=[1000., 2000., 3000.]),
               fits.Column(name='FLUXDENSITY', format='E', unit='photon/s/cm**2/eV', array=[1., 2., 3.])]
    path = outputs.save_hdu_to_fits([fits.BinTableHDU.from_columns(columns, name='SPEC')],
                                    outdir=str(tmp_path), filename='scalar.fits')
    spec = data_loader.load_midpspec(path + '[SPEC]')
    assert np.allclose(spec.energy, [1., 2., 3.])
    assert np.allclose(spec.pflux, [1000., 2000., 3000.])
    assert spec.name == ''


def test_load_lightcurve(simput_files):
    lc = data_loader.load_lightcurve(simput_files['timing'] + '[LIGHTCUR]')
    assert not lc.is_periodic
    assert np.allclose(lc.timing.time, [0., 50., 100.])
    assert np.allclose(lc.flux, [1., 2., 3.])
    assert lc.spectrum == ["[SPECTRUM][NAME=='flat']", "[SPECTRUM][NAME=='bright']", "[SPECTRUM][NAME=='bright']"]
    assert lc.image is None
    assert lc.src_id == 0


def test_load_periodic_lightcurve(tmp_path):
    lc = LightCurve(PeriodicTiming([0., 0.5, 1.], phase0=0.1, period=20., dperiod=1.e-9), [1., 3., 1.],
                    mjdref=55000., timezero=10., fluxscal=2.)
    hdu = outputs.create_lightcurve_hdu(lc)
    path = outputs.save_hdu_to_fits([hdu], outdir=str(tmp_path), filename='periodic.fits')

    loaded = data_loader.load_lightcurve(path + '[LIGHTCUR]')
    assert loaded.is_periodic
    assert loaded.timing.period == 20.
    assert loaded.timing.phase0 == pytest.approx(0.1)
    assert loaded.timing.dperiod == pytest.approx(1.e-9)
    assert loaded.mjdref == 55000.
    assert loaded.timezero == 10.
    assert loaded.fluxscal == 2.

    # Split reference time, no period
    del hdu.header['MJDREF']
    del hdu.header['PERIOD']
    hdu.header['MJDREFI'] = 55000
    hdu.header['MJDREFF'] = 0.5
    path = outputs.save_hdu_to_fits([hdu.copy()], outdir=str(tmp_path), filename='noperiod.fits')
    with pytest.raises(SimputConfigError):
        data_loader.load_lightcurve(path + '[LIGHTCUR]')

    hdu.header['PERIOD'] = 20.
    path = outputs.save_hdu_to_fits([hdu.copy()], outdir=str(tmp_path), filename='mjdrefi.fits')
    assert data_loader.load_lightcurve(path + '[LIGHTCUR]').mjdref == 55000.5


def test_load_invalid_lightcurve(tmp_path):
    lc = LightCurve(NonPeriodicTiming([0., 1.]), [1., 1.])
    hdu = outputs.create_lightcurve_hdu(lc)
    hdu.header['FLUXSCAL'] = 0.
    path = outputs.save_hdu_to_fits([hdu], outdir=str(tmp_path), filename='zero.fits')
    with pytest.raises(SimputConfigError):
        data_loader.load_lightcurve(path + '[LIGHTCUR]')


def test_load_psd_image_phlist(simput_files):
    psd = data_loader.load_psd(simput_files['timing'] + '[POWSPEC]')
    assert np.allclose(psd.frequency, [0.01, 0.1, 1.])
    assert np.allclose(psd.power, [10., 1., 0.1])

    img = data_loader.load_image(simput_files['image'] + '[IMAGE]')
    assert img.total == pytest.approx(1.)
    assert img.pixel(0.5) == (2, 2)
    assert np.allclose(img.wcs.wcs.crpix, [3., 3.])
    assert img.fluxscal == 1.
    with pytest.raises(SimputConfigError):
        data_loader.load_image(simput_files['phlist'] + '[PHLIST]')

    phl = data_loader.load_phlist(simput_files['phlist'] + '[PHLIST]')
    assert phl.nphs == 3
    assert np.allclose(phl.energy, [1.5, 2.5, 3.5])
    assert np.allclose(phl.ra, np.radians([0.1, 0.2, 359.9]))
    assert np.allclose(phl.dec, np.radians([0.1, -0.2, 0.3]))
    assert os.path.basename(phl.fileref) == 'phlist.fits[PHLIST]'


if __name__ == '__main__':
    test_parse_fileref()
    test_null_refs()
