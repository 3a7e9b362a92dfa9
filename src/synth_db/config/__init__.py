from synth_db.config.settings import FillerConfig, get_config, set_config
from synth_db.config.targets import load_target_rows
