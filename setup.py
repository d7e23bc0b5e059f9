
from setuptools import setup, find_packages

setup(
    name='diagram_distances',
    version='0.1.0',
    package_dir={'': 'src'},
    packages=['diagram_distances', 'diagram_distances.auction', 'diagram_distances.bottleneck'],
    python_requires='>=3.9',
    install_requires=['torch', 'numpy', 'scipy', 'structlog'],
    extras_require={
        'test': ['pytest'],
        'bench': ['pandas'],
    },
)
