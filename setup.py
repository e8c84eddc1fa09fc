from setuptools import setup

setup(name = 'stspde',
      version = '1.0',
      description = 'Space-time SPDE/GMRF negative loglikelihood for count data on a mesh',
      license = 'GPL-3.0+',
      packages = ['stspde'],
      python_requires = '>=3.9',
      install_requires = [
          'numpy',
          'scipy',
          'jax',
          'numba',
          'trimesh'
      ],
      extras_require = {
          'test': ['pytest'],
      },
      zip_safe = False)
