from setuptools import setup, find_packages
setup(
    name="texas_parcel_viewer",
    version="0.1.0",
    package_dir={"": "src"},
    packages=find_packages("src"),
    include_package_data=True,
    python_requires=">=3.9",
    install_requires=[
        "fastapi",
        "pydantic>=2",
        "httpx",
        "shapely>=2",
        "uvicorn",
        "reportlab",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        'console_scripts': [
            'texas_parcel_viewer=texas_parcel_viewer.__main__:main'
        ]
    }
)
