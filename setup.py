from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

with open("requirements.txt", "r", encoding="utf-8") as fh:
    requirements = [line.strip() for line in fh if line.strip() and not line.startswith("#")]

setup(
    name="mod10a1-snow-albedo-analysis",
    version="1.0.0",
    description="Quality-filtered MOD10A1 snow albedo statistics and trends for glaciers",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["main", "interactive_main"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Atmospheric Science",
        "Topic :: Scientific/Engineering :: GIS",
    ],
    python_requires=">=3.8",
    install_requires=requirements,
    extras_require={
        "test": ["pytest>=6.0"],
    },
    entry_points={
        "console_scripts": [
            "snow-albedo-analysis=main:main",
            "snow-albedo-interactive=interactive_main:main",
        ],
    },
    package_data={
        "": ["config/*.yaml"],
    },
    include_package_data=True,
)
