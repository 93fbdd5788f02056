from simputsim import outputs, observation
from simputsim.arf import ARF
from simputsim.spectrum import MIdpSpectrum
from simputsim.lightcurve import LightCurve, PeriodicTiming
from simputsim.psd import PowerSpectralDensity
from simputsim.image import image_wcs
from simputsim.inputs import Input
from synphot import SourceSpectrum, units
from synphot.models import ConstFlux1D
import numpy as np

#################################
### Write a SIMPUT catalog.   ###
#################################

outdir = 'simput_example'

# Toy instrument: 0.2-10 keV, effective area rising to 500 cm^2
energ_lo = np.linspace(0.2, 9.9, 98)
energ_hi = energ_lo + 0.1
arf = ARF(energ_lo, energ_hi, 500. * (1. - np.exp(-energ_lo)))
arf_file = outputs.save_hdu_to_fits([outputs.create_arf_hdu(arf)], outdir=outdir, filename='toy.arf')

# Constant photon flux per wavelength, i.e., a power law with photon index 2 in energy
sp = SourceSpectrum(ConstFlux1D, amplitude=1. * units.PHOTLAM)
energy = np.linspace(0.1, 12., 500)
powerlaw = MIdpSpectrum.from_synphot(sp, energy, name='powerlaw')
outputs.save_hdu_to_fits([outputs.create_spectrum_hdu([powerlaw])], outdir=outdir, filename='spectrum.fits')

# Periodic light curve (pulsar-like), red-noise PSD and a Gaussian blob image
pulse = LightCurve(PeriodicTiming(np.linspace(0., 1., 21), phase0=0., period=2.5),
                   1. + 0.8 * np.sin(2. * np.pi * np.linspace(0., 1., 21)))
psd = PowerSpectralDensity(np.logspace(-3, 0, 50), 0.1 * np.logspace(-3, 0, 50)**-1.)
outputs.save_hdu_to_fits([outputs.create_lightcurve_hdu(pulse), outputs.create_psd_hdu(psd)],
                         outdir=outdir, filename='timing.fits')

y, x = np.mgrid[0:64, 0:64]
blob = np.exp(-((x - 31.5)**2 + (y - 31.5)**2) / (2. * 8.**2))
outputs.save_hdu_to_fits([outputs.create_image_hdu(blob, image_wcs(64, 64, 1. / 60.))],
                         outdir=outdir, filename='image.fits')

spectrum = "spectrum.fits[SPECTRUM][NAME=='powerlaw']"
cat_hdu = outputs.create_catalog_hdu(src_id=[1, 2, 3, 4],
                                     ra=[83.63, 83.70, 83.55, 83.60],
                                     dec=[22.01, 22.05, 21.95, 22.10],
                                     e_min=[2.] * 4, e_max=[10.] * 4,
                                     flux=[1.e-11, 5.e-12, 2.e-12, 1.e-11],
                                     spectrum=[spectrum] * 4,
                                     image=['NULL', 'NULL', 'NULL', 'image.fits[IMAGE]'],
                                     timing=['NULL', 'timing.fits[LIGHTCUR]', 'timing.fits[POWSPEC]', 'NULL'],
                                     src_name=['steady', 'pulsar', 'agn', 'cluster'])
catalog_file = outputs.save_hdu_to_fits([cat_hdu], outdir=outdir, filename='catalog.fits')

##########################
### Generate photons.  ###
##########################

config = Input(psd_length=2**12, verbose=True)
photons = observation.simulate_observation(catalog_file, arf_file, t_start=0., t_stop=1000., mjdref=55000.,
                                           config=config, rndgen=np.random.default_rng(1).random,
                                           save_as_fits=True, output_dir=outdir, filename='photons.fits')

for src_id in range(1, 5):
    print(f"Source {src_id}: {np.sum(photons['SRC_ID'] == src_id)} photons")
