from simputsim.phlist import SimputPhList
from simputsim.arf import ARF
from simputsim.rndgen import RandomSource
from simputsim.spectrum import KEV2ERG
from simputsim.exceptions import SimputConfigError
import numpy as np
import math
import pytest


@pytest.fixture
def phlist():
    return SimputPhList([1.5, 2.5, 3.5], [0.1, 0.2, 2. * math.pi - 0.1], [0.1, -0.2, 0.3], fileref='ph.fits[PHLIST]')


def test_reference_area(phlist, simple_arf):
    assert phlist.refarea == 0.
    assert phlist.reference_area(simple_arf) == 40.
    assert phlist.refarea == 40.

    empty = SimputPhList([1.], [0.], [0.])
    with pytest.raises(SimputConfigError):
        empty.reference_area(ARF([1.], [2.], [0.]))
    with pytest.raises(SimputConfigError):
        empty.reference_area(None)


def test_reference_area_follows_arf(phlist, simple_arf):
    rndgen = RandomSource(np.random.default_rng(2).random)
    phlist.draw(simple_arf, rndgen)
    assert phlist.refarea == 40.

    steep_arf = ARF([1., 2., 3., 4.], [2., 3., 4., 5.], [400., 1., 1., 1.])
    assert phlist.reference_area(steep_arf) == 400.
    energies = np.array([phlist.draw(steep_arf, rndgen)[0] for _ in range(3000)])
    # Acceptance 400:1:1
    assert np.mean(energies == 1.5) == pytest.approx(400. / 402., abs=0.01)


def test_rejection_sampling(phlist, simple_arf, sequence_random):
    # Photon 2 (3.5 keV, 30 cm^2) is rejected with 0.8 >= 30/40, photon 0 (1.5 keV, 10 cm^2) accepted with 0.2 < 10/40
    rndgen = RandomSource(sequence_random([0.9, 0.8, 0.1, 0.2]))
    energy, ra, dec = phlist.draw(simple_arf, rndgen)
    assert energy == 1.5
    assert (ra, dec) == (0.1, 0.1)


def test_energy_weights(phlist, simple_arf):
    rndgen = RandomSource(np.random.default_rng(1).random)
    energies = np.array([phlist.draw(simple_arf, rndgen)[0] for _ in range(12000)])
    # Acceptance proportional to the effective areas 10, 20 and 30 cm^2
    fractions = [np.mean(energies == e) for e in [1.5, 2.5, 3.5]]
    assert np.allclose(fractions, [1. / 6., 2. / 6., 3. / 6.], atol=0.02)


def test_reference_band(phlist, simple_arf):
    assert phlist.refband_flux(1., 3.) == pytest.approx(4. * KEV2ERG)
    assert phlist.refband_flux(1.5, 3.5) == pytest.approx(7.5 * KEV2ERG)
    assert phlist.refband_flux(5., 6.) == 0.
    assert phlist.refnumber(simple_arf) == pytest.approx(60.)


def test_extension(phlist):
    # RA wraps around 0: the third photon is at (-0.1, 0.3)
    assert phlist.extension() == pytest.approx(math.sqrt(0.1))


def test_invalid_lists():
    with pytest.raises(ValueError):
        SimputPhList([], [], [])
    with pytest.raises(ValueError):
        SimputPhList([1., 2.], [0.], [0.])


if __name__ == '__main__':
    test_extension(SimputPhList([1.5, 2.5, 3.5], [0.1, 0.2, 2. * math.pi - 0.1], [0.1, -0.2, 0.3]))
    test_invalid_lists()
