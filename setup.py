#!/usr/bin/env python
install_requires = ['numpy', 'xarray', 'python-dateutil', 'netcdf4']
tests_require = ['pytest']
# %%
from setuptools import setup, find_packages

setup(name='torinex',
      packages=find_packages(exclude=['tests']),
      description='Python RINEX 2.10 / 3.04 OBS and NAV reader, writer and version converter',
      long_description=open('README.rst').read(),
      version='0.9.0',
      install_requires=install_requires,
      tests_require=tests_require,
      python_requires='>=3.9',
      extras_require={'tests': tests_require},
      classifiers=[
          'Development Status :: 4 - Beta',
          'Environment :: Console',
          'Intended Audience :: Science/Research',
          'Operating System :: OS Independent',
          'Programming Language :: Python :: 3',
          'Topic :: Scientific/Engineering :: Atmospheric Science',
      ],
      include_package_data=True,
      )
