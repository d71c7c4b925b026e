from setuptools import setup, find_packages
from pathlib import Path

package_name = 'toolchain-cluster-operator'
description = (
    'A Kubernetes Operator tracking the health of the remote clusters '
    'described by ToolchainCluster resources.'
)
author = 'Toolchain Operators'
license = 'Apache-2.0'
url = 'https://github.com/toolchain-operators/toolchain-cluster-operator'
pypi_classifiers = [
    'Development Status :: 4 - Beta',
    'License :: OSI Approved :: Apache Software License',
    'Programming Language :: Python :: 3.10'
]
keywords = ['kubernetes', 'operator', 'kopf']
readme = Path(__file__).parent / 'README.rst'

# Core dependencies
install_requires = [
    'kopf>=1.37',
    'kubernetes>=29.0.0',
    'structlog>=24.1.0',
]

# Test dependencies
tests_require = [
    'pytest>=8.0',
    'PyYAML>=6.0',
]

# Optional dependencies (like for dev)
extras_require = {
    'test': tests_require,
    # For development environments
    'dev': tests_require,
}

setup(
    name=package_name,
    version='0.1.0',
    description=description,
    long_description=readme.read_text(),
    author=author,
    url=url,
    license=license,
    classifiers=pypi_classifiers,
    keywords=keywords,
    package_dir={'': 'src'},
    packages=find_packages(where='src', exclude=['docs', 'tests']),
    python_requires='>=3.10',
    install_requires=install_requires,
    extras_require=extras_require,
    include_package_data=True
)
