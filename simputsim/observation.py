### Functions that will be run to simulate an observation of a whole catalog.

import os
import numpy as np
from astropy.table import Table

from simputsim import outputs
from simputsim.arf import ARF
from simputsim.catalog import SimputCatalog
from simputsim.photon import get_simput_photon

__all__ = ['generate_photons', 'simulate_observation']


def generate_photons(cat, t_start, t_stop, mjdref, sources=None):
    """Generates the photons emitted by the sources of a catalog within a time interval.

    For each source the next photon is drawn repeatedly, starting at t_start, until a photon
    time reaches t_stop or no photon can be produced any more (zero rate or exhausted light
    curve). Configuration errors are not caught.

    Args:
        cat (simputsim.catalog.SimputCatalog): The catalog, with the ARF already set.
        t_start (float): Start of the time interval [s].
        t_stop (float): End of the time interval [s].
        mjdref (float): MJD of the reference time of t_start and t_stop [d].
        sources (list[int], optional): Rows of the sources to be simulated. Defaults to all sources.

    Returns:
        astropy.table.Table: Photons with the columns TIME [s], ENERGY [keV], RA [rad], DEC [rad]
        and SRC_ID, sorted by time.
    """
    if not t_stop > t_start:
        raise ValueError(f"t_stop ({t_stop}) must be larger than t_start ({t_start})")

    rows = range(len(cat)) if sources is None else sources
    time, energy, ra, dec, src_id = [], [], [], [], []

    for row in rows:
        src = cat.get_source(row)
        prevtime = t_start
        nphotons = 0
        while True:
            photon = get_simput_photon(cat, src, prevtime, mjdref)
            if photon is None or photon[0] >= t_stop:
                break
            time.append(photon[0])
            energy.append(photon[1])
            ra.append(photon[2])
            dec.append(photon[3])
            src_id.append(src.src_id)
            prevtime = photon[0]
            nphotons += 1

        if cat.config.verbose:
            print(f"Source {src.src_id}: {nphotons} photons")

    photons = Table([np.array(time, dtype=float), np.array(energy, dtype=float),
                     np.array(ra, dtype=float), np.array(dec, dtype=float), np.array(src_id, dtype=int)],
                    names=('TIME', 'ENERGY', 'RA', 'DEC', 'SRC_ID'))
    photons.sort('TIME')
    return photons


def simulate_observation(catalog_file, arf_file, t_start, t_stop, mjdref, config=None, rndgen=None,
                         save_as_fits=False, output_dir=None, filename='photons.fits'):
    """Loads a catalog and an ARF and generates the photons of all sources.

    Args:
        catalog_file (str): Path to the SIMPUT catalog.
        arf_file (str): Path to the ARF file.
        t_start (float): Start of the time interval [s].
        t_stop (float): End of the time interval [s].
        mjdref (float): MJD of the reference time [d].
        config (simputsim.inputs.Input, optional): Engine configuration.
        rndgen (callable, optional): Uniform random number generator in [0,1).
        save_as_fits (bool, optional): If True, the photons are written to output_dir/filename.
        output_dir (str, optional): Output directory. Defaults to the directory of the catalog.
        filename (str, optional): Name of the output file. Default is 'photons.fits'.

    Returns:
        astropy.table.Table: The generated photons (see generate_photons).
    """
    cat = SimputCatalog(catalog_file, arf=ARF.from_fits(arf_file), rndgen=rndgen, config=config)
    photons = generate_photons(cat, t_start, t_stop, mjdref)

    if save_as_fits:
        outdir = output_dir if output_dir is not None else os.path.dirname(os.path.abspath(catalog_file))
        sim_info = {'catalog': os.path.basename(catalog_file), 'arf': os.path.basename(arf_file),
                    't_start': t_start, 't_stop': t_stop}
        outputs.save_hdu_to_fits([outputs.create_event_hdu(photons, mjdref=mjdref, sim_info=sim_info)],
                                 outdir=outdir, filename=filename)

    return photons
