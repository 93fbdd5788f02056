import sys

from setuptools import find_packages, setup

copy_args = sys.argv[1:]
#copy_args.append('--user')

setup(
      name="simputsim",
      version = "0.1",
      packages=find_packages(exclude=['test', 'test.*']),

      install_requires = ['numpy', 'scipy', 'astropy', 'synphot'],
      extras_require = {'test': ['pytest'],
                        'docs': ['sphinx', 'sphinx_rtd_theme']},

      script_args = copy_args,

      zip_safe = False,

      # Metadata for upload to PyPI
      author="simputsim developers",
      #author_email = "",
      description="Photon generation from SIMPUT source catalogs for X-ray instrument simulations",
      license = "BSD-3-Clause",
      platforms=["any"],
      url="",
)
