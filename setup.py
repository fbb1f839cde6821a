from setuptools import setup, find_packages

setup(
    name="liver_roi",
    version="0.1",
    packages=find_packages(exclude=["tests"]),
    install_requires=[
        'numpy',
        'SimpleITK',
        'scipy',
        'tqdm'
    ],
    extras_require={
        'test': ['pytest'],
    },
)
