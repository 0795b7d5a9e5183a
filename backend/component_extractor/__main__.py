from component_extractor.main import run_server

run_server()
