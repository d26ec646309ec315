"""
the uWSGI script for launching the collaborative folders service

This script launches the web service using uwsgi.  For example, one can
launch the service with the following command:

  uwsgi --plugin python3 --http-socket :9090 --wsgi-file collabfolders-uwsgi.py     \
        --set-ph cf_config_file=cf_conf.yml --set-ph cf_working_dir=_test

See the documentation for collabfolders.web and collabfolders.service for the configuration
parameters supported by this service.

This script also pays attention to the following environment variables:

   CF_HOME            The directory where the service is installed; this
                         is used to find the python package, collabfolders.
   CF_PYTHONPATH      The directory containing the python package, collabfolders.
                         This overrides what is implied by CF_HOME.
   CF_MONGODB_URL     The URL of the MongoDB database to store user preferences in;
                         this overrides the preferences.db_url configuration parameter.
"""
import os, sys, logging

try:
    import collabfolders
except ImportError:
    cfpath = os.environ.get('CF_PYTHONPATH')
    if not cfpath and 'CF_HOME' in os.environ:
        cfpath = os.path.join(os.environ['CF_HOME'], "lib", "python")
    if cfpath:
        sys.path.insert(0, cfpath)
    import collabfolders

from collabfolders import config, web

import uwsgi

def _dec(obj):
    # byte-decode an object if it is not None
    return obj.decode() if isinstance(obj, (bytes, bytearray)) else obj

confsrc = _dec(uwsgi.opt.get("cf_config_file"))
if not confsrc:
    raise config.ConfigurationException("collabfolders: configuration file (cf_config_file) "
                                        "not provided")
cfg = config.resolve_configuration(confsrc)

workdir = _dec(uwsgi.opt.get("cf_working_dir")) or cfg.get('working_dir', '.')
if not os.path.exists(workdir):
    os.mkdir(workdir)
cfg['working_dir'] = workdir

config.configure_log(config=cfg)

prefcfg = cfg.setdefault('preferences', {})
if os.environ.get("CF_MONGODB_URL"):
    prefcfg['type'] = "mongo"
    prefcfg['db_url'] = os.environ['CF_MONGODB_URL']
if prefcfg.get('type') == "fsbased":
    if not prefcfg.get('db_root_dir'):
        prefcfg['db_root_dir'] = os.path.join(workdir, "prefs")
    elif not os.path.isabs(prefcfg['db_root_dir']):
        prefcfg['db_root_dir'] = os.path.join(workdir, prefcfg['db_root_dir'])
    if not os.path.exists(prefcfg['db_root_dir']):
        os.makedirs(prefcfg['db_root_dir'])

qcfg = cfg.setdefault('task_queue', {})
if qcfg.get('type') == "fsbased":
    if not qcfg.get('queue_dir'):
        qcfg['queue_dir'] = os.path.join(workdir, "tasks")
    elif not os.path.isabs(qcfg['queue_dir']):
        qcfg['queue_dir'] = os.path.join(workdir, qcfg['queue_dir'])
    if not os.path.exists(qcfg['queue_dir']):
        os.makedirs(qcfg['queue_dir'])

# uwsgi uses the "application" symbol as the WSGI application object
application = web.create_app(cfg)

msg = f"Collaborative folders service (v{collabfolders.__version__}) ready with " \
      f"{prefcfg.get('type', 'inmem')} preference store"
print(msg)
logging.info(msg)
