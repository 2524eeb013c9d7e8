from setuptools import setup

setup(
    name='divpart',
    version='0.1.0',
    packages=['divpart', 'divpart.algos', 'divpart.metrics', 'divpart.tools'],
    description='Similarity-sensitive diversity measures for metacommunities partitioned into subcommunities',
    python_requires='>=3.9',
    license='GNU AGPLv3',
    install_requires=[
        'numba',
        'numpy',
        'pandas',
    ],
    extras_require={
        'test': [
            'pytest',
            'scipy',
        ],
    },
)
