# smoke_check.py - import the launcher and exercise the API against a throwaway profile
from pathlib import Path
import importlib
import tempfile
import traceback

mod_name = 'cannedreplies'
importlib.invalidate_caches()

try:
    app = importlib.import_module(mod_name)
    print('cannedreplies path:', Path(app.__file__).resolve())
    print('_start_webview exists:', hasattr(app, '_start_webview'))
    from replycore.config_manager import ConfigManager

    with tempfile.TemporaryDirectory() as td:
        try:
            api = app.ReplyAPI(config_manager=ConfigManager(base_dir=Path(td)))
            api.wait_until_loaded(5)
            print('ReplyAPI instantiated:', type(api))
            print('ping:', api.ping())
            for a in ['list_templates', 'create_template', 'insert', 'import_templates', 'export_templates']:
                print(f'has {a}:', hasattr(api, a))
        except Exception as e:
            print('ReplyAPI instantiation FAILED:', e)
            traceback.print_exc()
except Exception as e:
    print('Import failed:', e)
    traceback.print_exc()
