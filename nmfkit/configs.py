import configparser


# ------- RUN Configuration --------- #
run_config = configparser.ConfigParser()
run_config['project'] = {
    "name": "nmf",
    "directory": ".",
}
run_config['data'] = {
    "input_path": "",
    "index_col": "",
    "header": True
}
run_config['parameters'] = {
    'rank': 2,
    'update_rules': 'multdist',   # multdist, multdiv or als
    'models': 1,                  # Number of models, a batch is trained when greater than 1
    'init_method': 'random',      # random or kmeans
    'init_norm': True,
    'seed': 42,
    'max_iter': 10000,            # 0 for no maximum
    'min_residue': 1e-5,
    'converge_delta': 1e-10,
    'converge_n': 10,
    'verbose': False,
    'parallel': False
}
