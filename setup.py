from setuptools import setup, find_packages

setup(
    name="trendfit",
    version="1.0",
    description="trendfit: polynomial trends for COVID-19 and NYPD shooting reports",
    author="marcu",
    packages=find_packages(exclude=["tests"]),
    install_requires=["numpy", "polars", "tqdm", "plotly", "scipy"],
)
