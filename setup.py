from setuptools import setup, find_packages

setup(
    name='mods-loader',
    version='0.1.0',
    description='Keeps a versioned catalog of game mod artifacts in sync with upstream releases',
    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    python_requires='>=3.10',
    install_requires=[
        'requests',
        'urllib3',
        'PyYAML',
        'rich',
        'platformdirs',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'mods-loader=modsloader.cli:main',
        ],
    },
)
