from setuptools import setup, find_packages

setup(
    name='polytess',
    version='0.1.0',
    description='Polygon tessellation on the ellipsoid: caps, holes, '
                'extrusion and packed parameters',
    packages=find_packages(include=['polytess', 'polytess.*']),
    python_requires='>=3.8',
    install_requires=[
        'numpy',
        'numba',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
