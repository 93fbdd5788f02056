from simputsim.psd import PowerSpectralDensity, lightcurve_from_psd
from simputsim.rndgen import RandomSource
from simputsim.lightcurve import time_at
import numpy as np
import pytest


def test_binned_power():
    psd = PowerSpectralDensity([1., 2., 4.], [4., 2., 0.])
    power = psd.binned_power(4)
    # Grid 1, 2, 3, 4 Hz with a bin width of 1 Hz; 0 at and below the first frequency
    assert np.allclose(power, [0., 2., 1., 0.])

    with pytest.raises(ValueError):
        PowerSpectralDensity([2., 1.], [1., 1.])
    with pytest.raises(ValueError):
        PowerSpectralDensity([0., 1.], [1., 1.])


def test_lightcurve_grid():
    psd = PowerSpectralDensity([0.1, 1., 5.], [1., 0.1, 0.01], fileref='psd.fits[POWSPEC]')
    rndgen = RandomSource(np.random.default_rng(1).random)
    lc = lightcurve_from_psd(psd, rndgen, t0=100., mjdref=55000., src_id=7, nbins=64)

    assert lc.nentries == 128
    assert np.allclose(np.diff(lc.timing.time), 1. / (2. * 5.))
    assert lc.timing.time[0] == 0.
    assert lc.timezero == 100.
    assert lc.mjdref == 55000.
    assert lc.fluxscal == 1.
    assert lc.src_id == 7
    assert lc.fileref == 'psd.fits[POWSPEC]'
    assert time_at(lc, 0, 0, 55000.) == pytest.approx(100.)
    assert np.all(lc.flux >= 0.)


def test_lightcurve_rms():
    psd = PowerSpectralDensity([0.01, 1.], [0.5, 0.5])
    rndgen = RandomSource(np.random.default_rng(3).random)
    nbins = 256
    lc = lightcurve_from_psd(psd, rndgen, t0=0., mjdref=0., src_id=1, nbins=nbins)

    power = psd.binned_power(nbins)
    requ_rms = np.sqrt(1. + np.sum(power) / 2.)
    # Clamping of negative values can only reduce the RMS
    assert np.sqrt(np.mean(lc.flux**2)) <= requ_rms * (1. + 1e-9)
    # Mean flux is positive for a moderate variability
    assert np.mean(lc.flux) > 0.5


def test_zero_psd_gives_constant_lightcurve():
    # Only the zero-frequency coefficient remains
    psd = PowerSpectralDensity([1., 2.], [0., 0.])
    rndgen = RandomSource(np.random.default_rng(5).random)
    lc = lightcurve_from_psd(psd, rndgen, t0=0., mjdref=0., src_id=1, nbins=16)
    assert np.allclose(lc.flux, 1.)


def test_invalid_length():
    psd = PowerSpectralDensity([1., 2.], [1., 1.])
    rndgen = RandomSource(np.random.default_rng(5).random)
    with pytest.raises(ValueError):
        lightcurve_from_psd(psd, rndgen, t0=0., mjdref=0., src_id=1, nbins=100)


def test_uses_engine_random_numbers(sequence_random):
    psd = PowerSpectralDensity([1., 2.], [1., 1.])
    stub = sequence_random([0.5, 0.25], cycle=True)
    lightcurve_from_psd(psd, RandomSource(stub), t0=0., mjdref=0., src_id=1, nbins=8)
    # One Gaussian pair (two uniform numbers) per frequency bin
    assert stub.ncalls == 2 * 8



def test_fourier_coefficients(sequence_random):
    psd = PowerSpectralDensity([1., 2.], [1.e-3, 1.e-3])
    nbins = 8
    values = [0.3, 0.1, 0.6, 0.7, 0.45, 0.9]
    lc = lightcurve_from_psd(psd, RandomSource(sequence_random(values, cycle=True)), t0=0., mjdref=0.,
                             src_id=1, nbins=nbins)

    # Same Gaussian numbers in the same order
    draws = RandomSource(sequence_random(values, cycle=True))
    power = psd.binned_power(nbins)
    coeffs = np.zeros(nbins + 1, dtype=complex)
    coeffs[0] = 1.
    coeffs[nbins] = draws.gauss_pair()[1] * np.sqrt(power[-1] / 2.)
    for kk in range(1, nbins):
        randr, randi = draws.gauss_pair()
        coeffs[kk] = complex(randr, randi) * np.sqrt(power[kk - 1] / 2.)

    # Unnormalized inverse transform
    expected = np.fft.irfft(coeffs, n=2 * nbins) * 2 * nbins
    requ_rms = np.sqrt(1. + np.sum(power) / 2.)
    expected *= requ_rms / np.sqrt(np.mean(expected**2))

    assert np.all(expected > 0.)
    assert np.allclose(lc.flux, expected)
    assert np.sqrt(np.mean(lc.flux**2)) == pytest.approx(requ_rms)


if __name__ == '__main__':
    test_binned_power()
    test_lightcurve_grid()
    test_lightcurve_rms()
    test_zero_psd_gives_constant_lightcurve()
    test_invalid_length()
