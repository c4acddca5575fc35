from setuptools import setup, find_packages

setup(
    name="flac2opus",
    version="0.3",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "tqdm",
        "python-magic",
        "mutagen",
        "numpy",
        "soundfile>=0.12",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "flac2opus=flac2opus.__main__:main",
        ],
    },
    python_requires=">=3.9",
    author="Nick Kossifidis",
    author_email="mickflemm@gmail.com",
    description="Gapless, loudness normalized FLAC album to Opus transcoder",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    url="https://rastapank.radio.uoc.gr",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: GNU General Public License v2 or later (GPLv2+)",
        "Operating System :: POSIX",
    ],
)
