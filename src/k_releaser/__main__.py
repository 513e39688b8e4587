from k_releaser.cli.app import main

main()
