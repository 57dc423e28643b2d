import configparser


# ------- RUN Configuration --------- #
run_config = configparser.ConfigParser()
run_config['project'] = {
    "name": "",
    "directory": ".",
}
run_config['data'] = {
    "input_path": "",
    "label_path": "",
    "test_input_path": "",
    "test_label_path": "",
    "index_col": "",
    "test_percent": 0.2,
    "seed": 42,
    "drop_empty_labels": True,
    "apply_tfidf": True
}
run_config['graph'] = {
    "neighbors": 1,                  # Nearest neighbors per row, 0 trains without graph regularization
    "binary": True
}
run_config['parameters'] = {
    'factors': 4,
    'models': 1,
    'alpha': 0.5,
    'beta': 0.05,
    'lambda_': 0.5,
    'epsilon': 0.001,
    'max_iter': 500,
    'seed': 354,
    'parallel': False,
    'verbose': False
}

# ------- SIMULATOR Configuration -------- #
sim_config = configparser.ConfigParser()
sim_config['project'] = {
    "directory": "."
}
sim_config['parameters'] = {
    'seed': 42,
    'factors_n': 4,                  # Number of latent factors in the synthetic dataset
    'samples_n': 100,                # Number of shared rows
    'features_n': 40,                # Number of columns of the primary view
    'labels_n': 15,                  # Number of columns of the side view
    'labels_per_sample': 2,          # Side view columns associated with every row
    'noise_scale': 0.05              # Scale of the noise added to the primary view
}
