from tartly.cli import run

if __name__ == "__main__":
    run()
