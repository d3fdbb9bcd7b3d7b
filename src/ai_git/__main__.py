from ai_git.cli.app import main

if __name__ == "__main__":
    main()
