from setuptools import setup


setup(
    name="statement-doctor",
    version="0.1.0",
    description="Local-first normalization of messy bank statement CSV and Excel exports",
    packages=["statement_doctor"],
    include_package_data=True,
    install_requires=[
        "pandas>=2.0",
        "chardet",
        "openpyxl",
        "streamlit",
    ],
    extras_require={
        "excel-legacy": ["xlrd"],
        "all": ["xlrd"],
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "statement-doctor=statement_doctor.cli:main",
        ]
    },
)
