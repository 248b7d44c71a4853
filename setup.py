from setuptools import setup, find_packages
import re

VERSIONFILE="tsfileserver/_version.py"
verstrline = open(VERSIONFILE, "rt").read()
VSRE = r"^__version__ = ['\"]([^'\"]*)['\"]"
mo = re.search(VSRE, verstrline, re.M)
if mo:
    verstr = mo.group(1)
else:
    raise RuntimeError("Unable to find version string in %s." % (VERSIONFILE,))


setup(
	# Application name:
	name="tsfileserver",

	# Version number (initial):
	version=verstr,

	# Packages
	packages=find_packages(exclude=["tsfileserver.test"]),

	# Include additional files into the package
	include_package_data=True,

	zip_safe = True,
	description="Share a single directory over HTTP(S) with optional uploads",
	long_description="",

	python_requires='>=3.10',
	classifiers=[
		"Programming Language :: Python :: 3.10",
		"Operating System :: OS Independent",
	],
	install_requires=[
		'cryptography>=42.0.0',
		'h11>=0.14.0',
	],
	extras_require={
		'test': [
			'pytest',
		],
	},
	entry_points={
		'console_scripts': [
			'ts-fileserver = tsfileserver.examples.fileserver:main',
		],
	}
)
