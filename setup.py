from setuptools import find_packages, setup

setup(
    name="dissect.keyedarchive",
    version="1.0.0",
    description="Decoder for NSKeyedArchiver object archives",
    python_requires=">=3.10",
    packages=list(map(lambda v: "dissect." + v, find_packages("dissect"))),
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        "console_scripts": [
            "dump-keyedarchive=dissect.keyedarchive.tools.dump_keyedarchive:main",
        ],
    },
)
