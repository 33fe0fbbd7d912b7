import codecs
import os
import re

from setuptools import find_packages
from setuptools import setup


def read_file(filename, encoding='utf8'):
    """Read unicode from given file."""
    with codecs.open(filename, encoding=encoding) as fd:
        return fd.read()


here = os.path.abspath(os.path.dirname(__file__))

# read version number (and other metadata) from package init
init_fn = os.path.join(here, 'src', 'vault_renewer', '__init__.py')
meta = dict(re.findall(r"""__([a-z]+)__ = '([^']+)""", read_file(init_fn)))

readme = read_file(os.path.join(here, 'README.rst'))
version = meta['version']

install_requires = [
    'ConfigArgParse>=1.5.3',
    'requests>=2.20.0',
    'urllib3>=1.26.0',
]

test_extras = [
    'hypothesis',
    'pytest',
    'pytest-cov',
    'requests-mock',
]

dev_extras = [
    'coverage',
    'mypy',
    'pylint',
    'types-requests',
]

setup(
    name='vault-renewer',
    version=version,
    description="Vault token TTL watchdog and renewal agent",
    long_description=readme,
    author="vault-renewer contributors",
    license='Apache License 2.0',
    python_requires='>=3.9',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Environment :: Console',
        'Intended Audience :: System Administrators',
        'License :: OSI Approved :: Apache Software License',
        'Operating System :: POSIX :: Linux',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Topic :: Security',
        'Topic :: System :: Systems Administration',
        'Topic :: Utilities',
    ],

    package_dir={'': 'src'},
    packages=find_packages(where='src'),
    include_package_data=True,

    install_requires=install_requires,
    extras_require={
        'dev': dev_extras,
        'test': test_extras,
    },

    entry_points={
        'console_scripts': [
            'vault-renewer = vault_renewer.main:main',
        ],
    },
)
