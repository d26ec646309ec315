import os
from setuptools import setup, find_packages

CLASSIFIERS = [
    'Operating System :: POSIX',
    'Operating System :: MacOS :: MacOS X',
    'Intended Audience :: Education',
    'Programming Language :: Python',
    'Programming Language :: Python :: 3',
    'Topic :: Education'
]

def get_version():
    out = "dev"
    pkgdir = os.path.dirname(os.path.abspath(__file__))
    versfile = os.path.join(pkgdir, 'VERSION')
    if os.path.exists(versfile):
        with open(versfile) as fd:
            parts = fd.readline().split()
        if len(parts) > 0:
            out = parts[-1]
    return out

setup(name='collabfolders',
      version=get_version(),
      description="collabfolders: shared Nextcloud folders for collaborative learning activities",
      scripts=[ 'scripts/collabfolders-uwsgi.py' ],
      package_dir={'': 'python'},
      packages=find_packages(where='python', include=['collabfolders', 'collabfolders.*']),
      install_requires=[
          'requests',
          'webdavclient3',
          'pyOpenSSL',
          'flask',
          'flask-restful',
          'pymongo',
          'PyYAML'
      ],
      extras_require={
          'test': [ 'pytest' ]
      },
      classifiers=CLASSIFIERS,
      zip_safe=False
)
