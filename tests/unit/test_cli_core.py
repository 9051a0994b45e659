from smilefjes.cli import parse_args


def test_parse_args_defaults():
    args = parse_args(["build"])
    assert args.command == "build"
    assert args.config_dir == "./config"
    assert args.data_dir == "./data"
    assert args.overlay_config_dir is None
    assert args.max_features is None
    assert args.source is None


def test_parse_args_accepts_overrides():
    args = parse_args(["validate", "--output", "out.geojson", "--max-features", "10", "--source", "local.csv"])
    assert args.command == "validate"
    assert args.output == "out.geojson"
    assert args.max_features == 10
    assert args.source == "local.csv"
