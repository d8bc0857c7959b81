from setuptools import setup, find_packages

setup(
    name='earclip',
    version='0.1.0',
    description='Ear-clipping triangulation of polygons with holes, '
                'with optional grid-aligned re-tessellation',
    packages=find_packages(),
    python_requires='>=3.9',
    install_requires=[
        'numpy',
        'numba',
    ],
    extras_require={
        'tests': ['pytest'],
        'cuda': ['cupy'],
    },
)
